# puzzle_bot.py
import argparse
import logging
import signal
import sys

from puzzles.config import ConfigurationError, Settings
from puzzles.daemon import PuzzleBot

LOGGER = logging.getLogger("puzzle_bot")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Post the daily LeetCode challenge to Telegram chats.")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="run one delivery cycle to all subscribers and exit")
    mode.add_argument("--webhook", action="store_true", help="receive updates through a Flask webhook instead of polling")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--webhook-url", help="public URL to register with Telegram in webhook mode")
    parser.add_argument("--env-file", help="path to a .env file")
    return parser.parse_args(argv)


def make_stop_handler(bot):
    """SIGTERM handler: stop the loops, then unwind the main thread like Ctrl-C."""

    def _stop(signum, frame):
        LOGGER.info("Received signal %s, shutting down", signum)
        bot.stop_event.set()
        # the Flask server in webhook mode never looks at stop_event
        raise KeyboardInterrupt

    return _stop


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        settings = Settings.from_env(args.env_file)
    except ConfigurationError as exc:
        setup_logging()
        for problem in exc.problems:
            LOGGER.error("Configuration error: %s", problem)
        return 2

    setup_logging(settings.log_level)
    bot = PuzzleBot(settings)
    signal.signal(signal.SIGTERM, make_stop_handler(bot))

    try:
        if args.once:
            report = bot.dispatcher.run_cycle()
            LOGGER.info("Manual cycle: %s", report.summary())
        elif args.webhook:
            from app import create_app

            if args.webhook_url:
                bot.channel.set_webhook(args.webhook_url, settings.webhook_secret)
            bot.start_scheduler()
            create_app(bot).run(host=args.host, port=args.port)
        else:
            bot.run_forever()
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")
    finally:
        bot.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
