from datetime import timedelta

import pytest

from hostca.models.policy import SigningPolicy
from hostca.utils.duration import parse_duration


@pytest.mark.parametrize("text, expected", [
    ("168h", timedelta(hours=168)),
    ("1h30m", timedelta(hours=1, minutes=30)),
    ("90s", timedelta(seconds=90)),
    ("1.5h", timedelta(minutes=90)),
    ("500ms", timedelta(milliseconds=500)),
    ("0", timedelta(0)),
    ("-2m", timedelta(minutes=-2)),
])
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "h", "10", "10d", "1h 30m", "abc"])
def test_parse_duration_rejects_malformed(text):
    with pytest.raises(ValueError):
        parse_duration(text)


class TestSigningPolicy:
    def test_duration_string_is_parsed(self):
        policy = SigningPolicy(duration="168h")
        assert policy.duration == timedelta(days=7)
        assert policy.strip_suffix is None
        assert policy.aliases == {}

    def test_empty_suffix_means_no_suffix(self):
        assert SigningPolicy(duration="1h", strip_suffix="").strip_suffix is None

    @pytest.mark.parametrize("duration", ["0s", "-1h", "500ms"])
    def test_duration_must_be_positive(self, duration):
        with pytest.raises(ValueError):
            SigningPolicy(duration=duration)
