"""
run_wallet.py - Entry point for running the wallet emulator from a checkout.

Equivalent to `darklake-wallet` once the package is installed.
"""

import sys

# Add src to path for imports
sys.path.insert(0, 'src')


def main() -> int:
    from darklake_wallet.cli import main as cli_main

    return cli_main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(main())
