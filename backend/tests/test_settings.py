import pytest
from pydantic import ValidationError

from linkmeta.config import Settings


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.RESOLVE_TIMEOUT_MS == 7000
        assert s.MAX_RESPONSE_BYTES == 512_000
        assert s.BLOCKED_STATUS_CODES == [401, 403, 406, 429]
        assert "{origin}" in s.FAVICON_SERVICE_URL

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("RESOLVE_TIMEOUT_MS", "2500")
        monkeypatch.setenv("BLOCKED_STATUS_CODES", "[403, 451]")
        s = Settings(_env_file=None)
        assert s.RESOLVE_TIMEOUT_MS == 2500
        assert s.BLOCKED_STATUS_CODES == [403, 451]

    @pytest.mark.parametrize("field", ["RESOLVE_TIMEOUT_MS", "MAX_RESPONSE_BYTES", "HEAD_TAIL_BYTES"])
    def test_rejects_non_positive(self, field):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: 0})

    def test_favicon_template_needs_placeholder(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, FAVICON_SERVICE_URL="https://icons.example.com/")
