import json

import httpx

from blockchain_client import BlockchainClient
from ipfs_client import ContentStoreClient, get_public_url


def _bridge(handler):
    return BlockchainClient(base_url="http://bridge.test", transport=httpx.MockTransport(handler))


def test_create_batch_posts_actor_and_data():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"txHash": "0xabc", "blockNumber": 7})

    res = _bridge(handler).create_batch("0xactor", {"batchId": "HERB-1"})
    assert res == {"success": True, "transactionId": "0xabc", "blockNumber": 7}
    assert seen["path"] == "/batches"
    assert seen["body"] == {"actor": "0xactor", "batchId": "HERB-1"}


def test_submit_event_sends_event_type():
    def handler(request):
        assert json.loads(request.content)["eventType"] == "PROCESSING"
        return httpx.Response(200, json={"transactionId": "tx-1"})

    assert _bridge(handler).submit_event("PROCESSING", {})["success"] is True


def test_bridge_errors_come_back_as_results():
    res = _bridge(lambda r: httpx.Response(500, text="boom")).submit_event("QUALITY_TEST", {})
    assert res["success"] is False
    assert "500" in res["error"]

    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    res = _bridge(unreachable).create_batch("0x", {})
    assert res["success"] is False

    res = _bridge(lambda r: httpx.Response(200, json={"error": "endorsement failed"})).submit_event("X", {})
    assert res == {"success": False, "error": "endorsement failed"}


def test_identifier_formats():
    client = BlockchainClient()
    assert client.generate_batch_id().startswith("HERB-")
    assert client.generate_event_id("QUALITY_TEST").startswith("QUALITY_TEST-")
    assert client.generate_batch_id() != client.generate_batch_id()


def test_upload_file_returns_content_hash():
    def handler(request):
        assert b'filename="leaf.jpg"' in request.content
        return httpx.Response(200, json={"Hash": "QmLeaf"})

    store = ContentStoreClient(upload_url="http://ipfs.test/add", transport=httpx.MockTransport(handler))
    res = store.upload_file(b"jpeg", filename="leaf.jpg", content_type="image/jpeg")
    assert res == {"success": True, "contentHash": "QmLeaf", "url": "https://ipfs.io/ipfs/QmLeaf"}


def test_upload_json_and_failures():
    store = ContentStoreClient(upload_url="http://ipfs.test/add",
                               transport=httpx.MockTransport(lambda r: httpx.Response(502)))
    assert store.upload_json({"a": 1})["success"] is False
    assert ContentStoreClient(upload_url="").upload_file(b"x")["success"] is False


def test_public_url():
    assert get_public_url("QmX", gateway="https://gw.example/ipfs") == "https://gw.example/ipfs/QmX"
    assert get_public_url("") == ""
