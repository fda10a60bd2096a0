import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from src.adapters.dev_backend import InMemoryBackend
from src.adapters.dev_email import DevEmailAdapter
from src.api.main import create_app
from src.app_shell.config import collect_config_errors, validate_startup
from src.rules.loader import load_rules
from src.rules.models import Rules, normalize_path, normalize_url
from src.services.context import AppContext

logger = logging.getLogger("cli")

RULES_PATH = "rules.yaml"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO", log_file: str | None = None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, handlers=handlers, force=True)


def get_rules(args: argparse.Namespace) -> Rules:
    path = Path(args.config)
    if not path.exists():
        if args.config != RULES_PATH:
            logger.error(f"Rules file {path} not found.")
            sys.exit(1)
        # Defaults plus environment
        return load_rules(None)

    try:
        return load_rules(path)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)


def apply_overrides(rules: Rules, args: argparse.Namespace) -> Rules:
    """Command-line values win over the rules file."""
    update: dict[str, object] = {}
    if getattr(args, "base_url", None):
        update["base_url"] = normalize_url(args.base_url)
    if getattr(args, "base_path", None) is not None:
        update["base_path"] = normalize_path(args.base_path)
    if getattr(args, "log_level", None):
        update["log_level"] = args.log_level
    if getattr(args, "log_file", None):
        update["log_file"] = args.log_file
    if getattr(args, "dev", False):
        update["smtp"] = rules.smtp.model_copy(update={"enabled": False})
    return rules.model_copy(update=update) if update else rules


def handle_serve(rules: Rules, args: argparse.Namespace) -> None:
    if args.dev:
        logger.warning("Development mode: in-memory backend, emails are not sent")
        context = AppContext.create(
            rules, backends={"dev": InMemoryBackend()}, email=DevEmailAdapter()
        )
    else:
        validate_startup(rules)
        context = AppContext.create(rules)

    logger.info(f"Serving on http://{args.host}:{args.port}{rules.base_path}/")
    uvicorn.run(
        create_app(rules, context=context),
        host=args.host,
        port=args.port,
        log_level=rules.log_level.lower(),
    )


def handle_lists(rules: Rules, args: argparse.Namespace) -> None:
    context = AppContext.create(rules)
    try:
        count = context.refresh_lists()
    finally:
        context.stop()

    if count == 0:
        print("No mailing lists found.")
        return
    for ml in context.lists.all():
        print(f"{ml.address}\t{ml.name}\t[{ml.backend}]")


def handle_check_config(rules: Rules, args: argparse.Namespace) -> None:
    errors = collect_config_errors(rules)
    if errors:
        for error in errors:
            print(f"ERROR: {error}")
        sys.exit(1)
    print(f"Configuration OK: {len(rules.backends)} backend(s), public URL {rules.public_url}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Double opt-in mailing list subscription service")
    parser.add_argument("--config", default=RULES_PATH, help="Path to rules.yaml")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--log-file", help="Also write logs to this file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8080)
    serve_parser.add_argument("--base-url", help="Public URL used in confirmation links")
    serve_parser.add_argument("--base-path", help="Path prefix for all routes")
    serve_parser.add_argument(
        "--dev", action="store_true", help="Use an in-memory backend and do not send email"
    )

    # lists
    subparsers.add_parser("lists", help="Show the mailing lists the backends expose")

    # check-config
    subparsers.add_parser("check-config", help="Validate configuration and exit")

    return parser


HANDLERS = {
    "serve": handle_serve,
    "lists": handle_lists,
    "check-config": handle_check_config,
}


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    configure_logging(args.log_level or "INFO", args.log_file)
    rules = apply_overrides(get_rules(args), args)
    configure_logging(rules.log_level, rules.log_file)

    HANDLERS[args.command](rules, args)


if __name__ == "__main__":
    main()
