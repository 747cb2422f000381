"""Tests for the JSON-RPC client and the registry served through it."""

import asyncio
import threading
import time
import pytest
import requests
from unittest.mock import Mock

from rpc import RegistryRPC, RPCError, NodeAuthError, NodeConnectionError, NodeError
from registry import (
    AssetRegistry,
    RemoteAssetRegistry,
    RegistryError,
    TokenNotFoundError,
    TransferNotAuthorizedError
)
from marketplace import Marketplace
from payments import BalanceBook

COLLECTION = "0xRemoteCollection"

def make_response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} error")
    return response

def make_client(*responses):
    session = Mock()
    session.headers = {}
    session.post.side_effect = list(responses)
    return RegistryRPC("http://node:8819", user="rpcuser", password="rpcpass", session=session), session

def test_call_sends_json_rpc_payload():
    client, session = make_client(make_response({'result': '0xOwner', 'error': None, 'id': 1}))

    assert client.ownerof(COLLECTION, 5) == '0xOwner'

    session.post.assert_called_once_with(
        "http://node:8819",
        json={"jsonrpc": "2.0", "method": "ownerof", "params": [COLLECTION, 5], "id": 1},
        timeout=10.0
    )
    assert session.auth == ("rpcuser", "rpcpass")
    assert session.headers['content-type'] == 'application/json'

def test_request_ids_increase():
    client, session = make_client(
        make_response({'result': True}),
        make_response({'result': True})
    )
    client.ping()
    client.ping()

    ids = [call.kwargs['json']['id'] for call in session.post.call_args_list]
    assert ids == [1, 2]

def test_node_error():
    client, _ = make_client(make_response(
        {'result': None, 'error': {'code': -3, 'message': 'no such token'}},
        status_code=500
    ))

    with pytest.raises(NodeError) as excinfo:
        client.ownerof(COLLECTION, 5)

    assert excinfo.value.code == -3
    assert excinfo.value.method == 'ownerof'
    assert "Token not found" in str(excinfo.value)

def test_auth_error():
    client, _ = make_client(make_response({}, status_code=401))
    with pytest.raises(NodeAuthError):
        client.ping()

@pytest.mark.parametrize("failure", [
    requests.exceptions.Timeout("slow"),
    requests.exceptions.ConnectionError("refused"),
])
def test_connection_errors(failure):
    client, _ = make_client(failure)
    with pytest.raises(NodeConnectionError):
        client.ping()

def test_http_error_without_rpc_error():
    client, _ = make_client(make_response({'result': None}, status_code=503))
    with pytest.raises(NodeConnectionError, match="HTTP error"):
        client.ping()

def test_invalid_response():
    client, _ = make_client(make_response({'unexpected': True}))
    with pytest.raises(NodeConnectionError, match="Invalid response format"):
        client.ping()

def test_from_settings():
    client = RegistryRPC.from_settings({
        'registry_rpc_url': 'http://node:8819',
        'registry_rpc_user': '',
        'registry_rpc_password': '',
        'registry_rpc_timeout': 2.5
    })
    assert client.url == 'http://node:8819'
    assert client.timeout == 2.5
    assert client.session.auth is None

    with pytest.raises(RPCError):
        RegistryRPC.from_settings({'registry_rpc_url': ''})

class FakeNodeClient:
    """Stands in for RegistryRPC, holding one collection's state."""

    def __init__(self, owners, approvals=()):
        self.owners = dict(owners)
        self.approvals = set(approvals)

    def ownerof(self, collection, token_id):
        if token_id not in self.owners:
            raise NodeError("no such token", -3, 'ownerof')
        return self.owners[token_id]

    def isapprovedforall(self, collection, owner, operator):
        return (owner, operator) in self.approvals

    def transfercustody(self, collection, operator, sender, recipient, token_id):
        if token_id not in self.owners:
            raise NodeError("no such token", -3, 'transfercustody')
        if self.owners[token_id] != sender or (operator != sender and (sender, operator) not in self.approvals):
            raise NodeError("not allowed", -13, 'transfercustody')
        self.owners[token_id] = recipient
        return "txhash"

@pytest.mark.asyncio
async def test_remote_registry_maps_node_errors():
    registry = RemoteAssetRegistry(FakeNodeClient({1: "0xSeller"}), COLLECTION)
    assert isinstance(registry, AssetRegistry)
    assert registry.address == COLLECTION

    assert await registry.owner_of(1) == "0xSeller"
    with pytest.raises(TokenNotFoundError):
        await registry.owner_of(2)
    with pytest.raises(TransferNotAuthorizedError):
        await registry.transfer_custody("0xMarket", "0xSeller", "0xMarket", 1)

@pytest.mark.asyncio
async def test_remote_registry_wraps_other_errors():
    client = Mock()
    client.ownerof.side_effect = NodeError("boom", -1, 'ownerof')
    registry = RemoteAssetRegistry(client, COLLECTION)

    with pytest.raises(RegistryError, match="ownerof failed"):
        await registry.owner_of(1)

@pytest.mark.asyncio
async def test_marketplace_with_remote_registry():
    node = FakeNodeClient({1: "0xSeller"}, approvals={("0xSeller", "0xMarket")})
    registry = RemoteAssetRegistry(node, COLLECTION)
    funds = BalanceBook({"0xBuyer": 1000})
    marketplace = Marketplace.deploy("0xFee", 1, funds, address="0xMarket")

    item_id = await marketplace.create_listing("0xSeller", registry, 1, 100)
    assert node.owners[1] == "0xMarket"

    await marketplace.purchase_item(item_id, "0xBuyer", 101)
    assert node.owners[1] == "0xBuyer"
    assert await funds.balance_of("0xSeller") == 100
    assert await funds.balance_of("0xFee") == 1

class ThreadedSession:
    """Session stand-in that records request ids and overlapping posts."""

    def __init__(self):
        self.headers = {}
        self.auth = None
        self.ids = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._guard = threading.Lock()

    def post(self, url, json, timeout):
        with self._guard:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            self.ids.append(json['id'])
        time.sleep(0.01)
        with self._guard:
            self.in_flight -= 1
        return make_response({'result': '0xOwner', 'error': None, 'id': json['id']})

@pytest.mark.asyncio
async def test_concurrent_remote_calls_use_distinct_request_ids():
    session = ThreadedSession()
    client = RegistryRPC("http://node:8819", session=session)
    registry = RemoteAssetRegistry(client, COLLECTION)

    owners = await asyncio.gather(*(registry.owner_of(token_id) for token_id in range(1, 17)))

    assert owners == ['0xOwner'] * 16
    assert sorted(session.ids) == list(range(1, 17))
    assert session.max_in_flight == 1
