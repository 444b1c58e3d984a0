import hashlib
import hmac

from bitwheel.relay.signature import compute_signature, verify_signature

SECRET = "s3cr3t"
MESSAGE_ID = "e76c6bd4-55c9-4987-8304-da1588d8988b"
TIMESTAMP = "2019-11-16T10:11:12.634234626Z"
BODY = b'{"event": {"user_name": "Ada", "bits": 250}}'


def _mutate(data: bytes, index: int) -> bytes:
    return data[:index] + bytes([data[index] ^ 0x01]) + data[index + 1:]


def test_signature_is_reproducible():
    expected = "sha256=" + hmac.new(
        SECRET.encode(), MESSAGE_ID.encode() + TIMESTAMP.encode() + BODY, hashlib.sha256
    ).hexdigest()
    assert compute_signature(SECRET, MESSAGE_ID, TIMESTAMP, BODY) == expected
    assert compute_signature(SECRET, MESSAGE_ID, TIMESTAMP, BODY) == compute_signature(
        SECRET, MESSAGE_ID, TIMESTAMP, BODY.decode()
    )


def test_valid_signature_verifies():
    signature = compute_signature(SECRET, MESSAGE_ID, TIMESTAMP, BODY)
    assert verify_signature(SECRET, MESSAGE_ID, TIMESTAMP, BODY, signature)


def test_any_single_byte_mutation_invalidates():
    signature = compute_signature(SECRET, MESSAGE_ID, TIMESTAMP, BODY)
    for i in range(len(BODY)):
        assert not verify_signature(SECRET, MESSAGE_ID, TIMESTAMP, _mutate(BODY, i), signature)
    for i in range(len(MESSAGE_ID)):
        mutated = _mutate(MESSAGE_ID.encode(), i).decode()
        assert not verify_signature(SECRET, mutated, TIMESTAMP, BODY, signature)
    for i in range(len(TIMESTAMP)):
        mutated = _mutate(TIMESTAMP.encode(), i).decode()
        assert not verify_signature(SECRET, MESSAGE_ID, mutated, BODY, signature)


def test_wrong_secret_or_prefix_fails():
    signature = compute_signature(SECRET, MESSAGE_ID, TIMESTAMP, BODY)
    assert not verify_signature("other", MESSAGE_ID, TIMESTAMP, BODY, signature)
    assert not verify_signature(SECRET, MESSAGE_ID, TIMESTAMP, BODY, signature[len("sha256="):])


def test_missing_pieces_fail():
    signature = compute_signature(SECRET, MESSAGE_ID, TIMESTAMP, BODY)
    assert not verify_signature(None, MESSAGE_ID, TIMESTAMP, BODY, signature)
    assert not verify_signature(SECRET, None, TIMESTAMP, BODY, signature)
    assert not verify_signature(SECRET, MESSAGE_ID, None, BODY, signature)
    assert not verify_signature(SECRET, MESSAGE_ID, TIMESTAMP, BODY, None)
