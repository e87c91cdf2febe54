"""Tests for queue serialisation."""

from __future__ import annotations

import json

import pytest

from offlinekit.exceptions import PersistenceError
from offlinekit.models import NetworkRequest
from offlinekit.queue import (
    deserialize_queue,
    deserialize_request,
    serialize_queue,
    serialize_request,
)


def _full_request() -> NetworkRequest:
    return NetworkRequest(
        method="PATCH",
        url="https://api.example.com/notes/7",
        body={"text": "hello", "tags": ["a", "b"], "pinned": True},
        headers={"Authorization": "Bearer t", "X-Request-Id": "42"},
        query_params={"notify": "yes", "version": 3},
        retry_on_failure=True,
        max_retries=5,
        queue_offline=True,
        priority=9,
        cache_response=True,
        cache_ttl_seconds=12.5,
        timeout_seconds=4.0,
    )


class TestRequestMapping:
    def test_every_field_survives_json(self) -> None:
        request = _full_request()
        data = json.loads(json.dumps(serialize_request(request)))
        assert deserialize_request(data) == request

    def test_method_serialised_as_string(self) -> None:
        assert serialize_request(_full_request())["method"] == "PATCH"

    def test_string_body_survives(self) -> None:
        request = NetworkRequest(method="POST", url="/raw", body="plain text")
        assert deserialize_request(serialize_request(request)).body == "plain text"

    @pytest.mark.parametrize("body", [b"abc", b"\xff\x00\xfe", b""])
    def test_bytes_body_survives_json(self, body: bytes) -> None:
        request = NetworkRequest(method="PUT", url="/blob", body=body)
        data = json.loads(json.dumps(serialize_request(request)))
        restored = deserialize_request(data)
        assert isinstance(restored.body, bytes)
        assert restored == request

    def test_bytes_body_is_tagged_base64(self) -> None:
        data = serialize_request(NetworkRequest(method="PUT", url="/blob", body=b"\xff\x00"))
        assert data["body"] == "/wA="
        assert data["body_encoding"] == "base64"

    def test_text_body_is_not_tagged(self) -> None:
        assert "body_encoding" not in serialize_request(_full_request())

    @pytest.mark.parametrize(
        "data, match",
        [
            ({"method": "PUT", "url": "/b", "body": "@@@", "body_encoding": "base64"}, "base64"),
            ({"method": "PUT", "url": "/b", "body": "YWJj", "body_encoding": "rot13"}, "rot13"),
            ({"method": "PUT", "url": "/b", "body": 5, "body_encoding": "base64"}, "encoding"),
            ("not a mapping", "Invalid queued request"),
        ],
    )
    def test_bad_encoded_body_raises_persistence_error(self, data, match) -> None:
        with pytest.raises(PersistenceError, match=match):
            deserialize_request(data)

    def test_invalid_request_raises_persistence_error(self) -> None:
        with pytest.raises(PersistenceError, match="Invalid queued request"):
            deserialize_request({"method": "NOPE", "url": "/x"})


class TestQueueDocument:
    def test_document_shape(self) -> None:
        document = serialize_queue([_full_request()])
        assert document["version"] == 1
        assert len(document["requests"]) == 1

    def test_order_preserved(self) -> None:
        requests = [NetworkRequest(method="POST", url=f"/items/{i}") for i in range(5)]
        restored = deserialize_queue(serialize_queue(requests))
        assert [r.url for r in restored] == [f"/items/{i}" for i in range(5)]

    def test_empty_queue(self) -> None:
        assert deserialize_queue(serialize_queue([])) == []

    @pytest.mark.parametrize("document", [None, [], {"requests": "nope"}, {"version": 1}])
    def test_malformed_document(self, document: object) -> None:
        with pytest.raises(PersistenceError):
            deserialize_queue(document)

    def test_unknown_version(self) -> None:
        with pytest.raises(PersistenceError, match="version"):
            deserialize_queue({"version": 99, "requests": []})
