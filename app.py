# app.py
from flask import Flask, request, abort, jsonify
import hmac
import logging
from typing import Optional

from puzzles.config import Settings

LOGGER = logging.getLogger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def create_app(bot, webhook_secret: Optional[str] = None) -> Flask:
    """Flask front end that feeds Telegram webhook updates to ``bot``."""
    app = Flask(__name__)
    app.config["PUZZLE_BOT"] = bot
    secret = webhook_secret if webhook_secret is not None else bot.settings.webhook_secret

    @app.get("/robots.txt")
    def robots():
        return "User-agent: *\nDisallow: /\n", 200, {"Content-Type": "text/plain"}

    @app.get("/healthz")
    def healthz():
        return {"ok": True, "subscribers": len(bot.store)}, 200

    @app.post("/telegram/webhook")
    def telegram_webhook():
        if secret and not hmac.compare_digest(request.headers.get(SECRET_HEADER, ""), secret):
            abort(403)
        update = request.get_json(silent=True)
        if not isinstance(update, dict):
            # acknowledge anyway so Telegram does not keep redelivering it
            LOGGER.warning("Ignoring malformed webhook payload")
            return jsonify(ok=True), 200
        bot.submit_update(update)
        return jsonify(ok=True), 200

    return app


# ------------- Run -------------
if __name__ == "__main__":
    from puzzles.daemon import PuzzleBot

    logging.basicConfig(level=logging.INFO)
    bot = PuzzleBot(Settings.from_env())
    bot.start_scheduler()
    create_app(bot).run(host="0.0.0.0", port=8080)
