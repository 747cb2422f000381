"""Command line interface for checking the asset node connection"""
import sys

from config import get_settings, SettingsError
from . import RegistryRPC, RPCError, NodeConnectionError, NodeAuthError, NodeError

def check_node(address=None, token_id=None):
    """Ping the node and optionally look up a token owner"""
    try:
        client = RegistryRPC.from_settings(get_settings())
    except (SettingsError, RPCError) as e:
        print(str(e), file=sys.stderr)
        return 1

    try:
        print(f"\nChecking node at {client.url}")
        print("-" * 50)

        client.ping()
        print("  Node is reachable")

        if address and token_id is not None:
            owner = client.ownerof(address, token_id)
            print(f"  Token {token_id} of {address} is owned by {owner}")

    except NodeConnectionError as e:
        print(f"\nFailed to connect to node:\n  {e}")
        return 1
    except NodeAuthError as e:
        print(f"\nAuthentication failed:\n  {e}")
        return 1
    except NodeError as e:
        print(f"\nNode returned an error:\n  {e}")
        return 1

    return 0

if __name__ == "__main__":
    args = sys.argv[1:]
    address = args[0] if args else None
    token_id = int(args[1]) if len(args) > 1 else None
    sys.exit(check_node(address, token_id))
