#!/usr/bin/env python3
"""Print the effective configuration as JSON with secrets redacted."""

import argparse
import json

from dotenv import load_dotenv

from emotebot.config import ConfigError, load_config


def main() -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--show-secrets", action="store_true", help="Do not redact tokens.")
    args = parser.parse_args()

    try:
        config = load_config()
    except ConfigError as exc:
        raise SystemExit(f"Configuration error: {exc}")
    print(json.dumps(config.to_dict(redact_secrets=not args.show_secrets), indent=2))


if __name__ == "__main__":
    main()
