"""Job entrypoint invoked by the secrets manager for self-signed certificate secrets."""

from __future__ import annotations

import argparse
import sys

from libs.credentials.runner import ProviderJob
from libs.observability.logging import configure_logging

from .backend import load_backend
from .config import Settings

SERVICE_NAME = "certificate-provider"

job = ProviderJob(SERVICE_NAME, Settings, load_backend)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Generate a self-signed certificate")
    parser.add_argument("--log-level", default=None, help="Override SM_LOG_LEVEL")
    args = parser.parse_args(argv)

    configure_logging(SERVICE_NAME, level=args.log_level)
    sys.exit(job())


if __name__ == "__main__":  # pragma: no cover - CLI
    main()
