"""Command line interface for checking configuration loading"""
import logging
import sys
from pathlib import Path

from . import get_settings, SettingsError

EXAMPLE_SETTINGS = """[DEFAULT]
# Identity that receives the marketplace commission
fee_account = 0xFeeRecipient
# Commission in percent, added on top of the listing price
fee_percent = 1
# Identity that holds escrowed assets while they are listed
marketplace_address = marketplace
# Item ledger backend: memory or postgres
ledger_backend = memory
db_url = postgresql://root@localhost:26257/defaultdb?sslmode=disable
# JSON-RPC endpoint of the asset node (optional)
registry_rpc_url =
registry_rpc_user =
registry_rpc_password =
registry_rpc_timeout = 10
# Comma-separated collection addresses served by the asset node
registry_addresses =
log_level = INFO
"""

def main():
    """Display loaded configuration"""
    try:
        settings = get_settings()
    except SettingsError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=settings['log_level'],
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in settings.items():
        if key == 'registry_rpc_password' and value:
            value = '********'
        print(f"{key}: {value}")

    # Save example configuration file
    examples_dir = Path("examples")
    examples_dir.mkdir(exist_ok=True)

    with open(examples_dir / "settings.conf.example", "w") as f:
        f.write(EXAMPLE_SETTINGS)

if __name__ == "__main__":
    main()
