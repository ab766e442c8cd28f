"""Loading of the telemetry backend credential."""

from pathlib import Path

import structlog
from pydantic import SecretStr

from src.infrastructure.observability.exceptions import CredentialNotFoundError

logger = structlog.get_logger()

HONEYCOMB_TEAM_HEADER = "x-honeycomb-team"


def load_api_key(*, api_key: SecretStr | None, key_file: Path) -> SecretStr:
    """Resolve the Honeycomb API key.

    An explicitly configured key wins over the key file. The key file is
    expected to hold a single line with the key; surrounding whitespace is
    stripped.

    Args:
        api_key: Key from the environment, if any.
        key_file: Path of the file holding the key.

    Returns:
        The API key.

    Raises:
        CredentialNotFoundError: If no non-blank key can be found.
    """
    if api_key is not None and api_key.get_secret_value().strip():
        logger.info("telemetry_credential_loaded", source="environment")
        return SecretStr(api_key.get_secret_value().strip())

    try:
        raw = key_file.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise CredentialNotFoundError(
            f"Honeycomb API key file not found: {key_file}",
            source=str(key_file),
        ) from e

    key = raw.strip()
    if not key:
        raise CredentialNotFoundError(
            f"Honeycomb API key file is empty: {key_file}",
            source=str(key_file),
        )

    logger.info("telemetry_credential_loaded", source=str(key_file))
    return SecretStr(key)


def auth_headers(api_key: SecretStr) -> dict[str, str]:
    """Build the export request headers carrying the API key."""
    return {HONEYCOMB_TEAM_HEADER: api_key.get_secret_value()}
