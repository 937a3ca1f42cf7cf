import importlib.util
import io
import os

import pytest

pytest.importorskip("flask")

from KFCE.SHM.records import serialize
from KFCE.SVM.capture_io import format_sub_raw
from KFCE.registry import encoder_for

SERVER_PATH = os.path.join(os.path.dirname(__file__), os.pardir, "tools", "py_bridge_server.py")


@pytest.fixture(scope="module")
def client():
    spec = importlib.util.spec_from_file_location("py_bridge_server", SERVER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    module.app.testing = True
    return module.app.test_client()


def test_health(client):
    resp = client.get("/py-bridge/health")
    assert resp.status_code == 200
    assert "Ford V0" in resp.get_json()["protocols"]


def test_decode_raw_upload(client, messages):
    raw = format_sub_raw(encoder_for(messages["Subaru"]).pulses())
    resp = client.post(
        "/py-bridge/decode",
        data={"capture": (io.BytesIO(raw.encode("utf-8")), "subaru.sub")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert [m["protocol"] for m in body["messages"]] == ["Subaru"]
    assert body["messages"][0]["serial"] == 0xA5C3E1


def test_decode_requires_file(client):
    resp = client.post("/py-bridge/decode", data={})
    assert resp.status_code == 400


def test_encode_record(client, messages):
    resp = client.post("/py-bridge/encode", data={"record": serialize(messages["VW"])})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["protocol"] == "VW"
    assert body["pulses"][:2] == [[1, 500], [0, 500]]
    assert body["raw"].startswith("Filetype: Flipper SubGhz RAW File")


def test_encode_bad_record(client):
    resp = client.post("/py-bridge/encode", data={"record": "Protocol: Nope\nBit: 1\nKey: 0\n"})
    assert resp.status_code == 400
    assert "unknown protocol" in resp.get_json()["error"]
