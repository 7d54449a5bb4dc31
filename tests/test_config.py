import pytest

from workspace_hub.config import _env_weights


def test_weights_from_env(monkeypatch):
    monkeypatch.setenv("ACTIVITY_SCORE_WEIGHTS", '{"task": 20, "report": "7.5"}')
    assert _env_weights("ACTIVITY_SCORE_WEIGHTS") == {"task": 20.0, "report": 7.5}


def test_unset_weights(monkeypatch):
    monkeypatch.delenv("ACTIVITY_SCORE_WEIGHTS", raising=False)
    assert _env_weights("ACTIVITY_SCORE_WEIGHTS") is None


@pytest.mark.parametrize("raw", ['{"task": null}', '{"task": "high"}', "[1, 2]", "not json"])
def test_malformed_weights(monkeypatch, raw):
    monkeypatch.setenv("ACTIVITY_SCORE_WEIGHTS", raw)
    with pytest.raises(RuntimeError, match="numeric weights"):
        _env_weights("ACTIVITY_SCORE_WEIGHTS")
