import pytest
from pydantic import ValidationError

from bitwheel.events import EventSubEnvelope, ManualSpinBody, SpinComplete, SpinRequest, spin_count


def test_spin_count_is_floor_division():
    for bits in range(0, 1001):
        assert spin_count(bits) == bits // 100


@pytest.mark.parametrize("bits", [0, 1, 50, 99])
def test_under_threshold_gives_zero_spins(bits):
    assert SpinRequest.from_bits("Ada", bits).spins == 0


def test_custom_bits_per_spin():
    assert spin_count(250, bits_per_spin=50) == 5


def test_negative_bits_rejected():
    with pytest.raises(ValueError):
        spin_count(-1)
    with pytest.raises(ValidationError):
        SpinRequest(donor="Ada", bits=-5, spins=0)


def test_spin_request_wire_shape():
    spin = SpinRequest.from_bits("Ada", 250, message="gg")
    assert spin.model_dump() == {"donor": "Ada", "bits": 250, "spins": 2, "message": "gg"}


def test_spin_request_rejects_missing_fields():
    with pytest.raises(ValidationError):
        SpinRequest.model_validate({"donor": "Ada", "bits": 100})


def test_spin_complete_requires_result():
    with pytest.raises(ValidationError):
        SpinComplete.model_validate({})
    assert SpinComplete.model_validate({"result": "DROP"}).result == "DROP"


def test_test_spin_body_rejects_negative_bits():
    with pytest.raises(ValidationError):
        ManualSpinBody.model_validate({"bits": -100})


def test_envelope_parses_cheer_notification():
    raw = b'{"subscription": {"type": "channel.cheer"}, "event": {"user_name": "Ada", "bits": 250, "is_anonymous": false}}'
    envelope = EventSubEnvelope.model_validate_json(raw)
    assert envelope.event.bits == 250
    assert envelope.event.user_name == "Ada"
    assert envelope.challenge is None


def test_envelope_rejects_non_numeric_bits():
    with pytest.raises(ValidationError):
        EventSubEnvelope.model_validate_json(b'{"event": {"user_name": "Ada", "bits": "lots"}}')
