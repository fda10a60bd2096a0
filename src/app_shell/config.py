import logging
import sys

from src.rules.models import Rules

logger = logging.getLogger(__name__)


def collect_config_errors(rules: Rules) -> list[str]:
    """
    Validate operational requirements before startup.
    Returns a list of human-readable problems (empty when ready to run).
    """
    errors: list[str] = []

    # 1. Backends and their credentials
    if not rules.backends:
        errors.append("No mailing-list backend configured")
    for backend in rules.backends:
        if not backend.api_key:
            errors.append(f"{backend.kind.upper()}_API_KEY not set for backend {backend.backend_name}")
        if backend.kind == "mailjet" and not backend.api_secret:
            errors.append(f"MAILJET_API_SECRET not set for backend {backend.backend_name}")

    # 2. SMTP, unless mail is routed to the dev adapter
    if rules.smtp.enabled and not rules.smtp.is_complete:
        errors.append(
            "SMTP configuration incomplete (host, port, user and password are required)"
        )

    # 3. Lists without a backend can only be resolved with a single backend
    if len(rules.backends) > 1:
        for ml in rules.lists:
            if ml.backend is None:
                errors.append(f"List {ml.address} must name its backend")

    return errors


def validate_startup(rules: Rules) -> None:
    """Fail fast: log every problem and exit with status 1."""
    errors = collect_config_errors(rules)
    if errors:
        for error in errors:
            logger.critical(error)
        sys.exit(1)

    logger.info("Configuration validated")
