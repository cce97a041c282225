"""Tests for contextauth.signing."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from contextauth import AuthSettings, ConfigurationError, SigningKeys, parse_duration, resolve_expiration
from contextauth import signing

from conftest import AUDIENCE, ISSUER


class TestParseDuration:
    """Time span strings."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("10s", 10),
            ("30 secs", 30),
            ("5 minutes", 300),
            ("1 min", 60),
            ("2h", 7200),
            ("1.5 hours", 5400),
            ("1 day", 86400),
            ("2 weeks", 1209600),
            ("1 year", 31557600),
            ("1 week from now", 604800),
            ("2 hours ago", -7200),
            ("-1 hour", -3600),
            ("+1 hour", 3600),
            ("1 HOUR", 3600),
        ],
    )
    def test_valid(self, value: str, expected: int) -> None:
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "hour", "3 months", "1 fortnight", "-1 hour ago", "one day"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ValueError, match="Invalid time period format"):
            parse_duration(value)


class TestResolveExpiration:
    """Expiration arguments to absolute timestamps."""

    def test_absolute_timestamp(self) -> None:
        assert resolve_expiration(1_700_000_000, now=0) == 1_700_000_000
        assert resolve_expiration(1_700_000_000.9, now=0) == 1_700_000_000

    def test_datetime(self) -> None:
        moment = datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert resolve_expiration(moment) == int(moment.timestamp())

    def test_naive_datetime_is_utc(self) -> None:
        naive = datetime(2030, 1, 1)
        assert resolve_expiration(naive) == int(datetime(2030, 1, 1, tzinfo=timezone.utc).timestamp())

    def test_timedelta(self) -> None:
        assert resolve_expiration(timedelta(minutes=5), now=1000) == 1300

    def test_duration_string(self) -> None:
        assert resolve_expiration("1 hour", now=1000) == 4600
        assert resolve_expiration("10 minutes ago", now=1000) == 400

    @pytest.mark.parametrize("value", [True, None, ["1 hour"]])
    def test_unsupported(self, value) -> None:
        with pytest.raises(TypeError):
            resolve_expiration(value)


class TestSigningKeys:
    """Lazy key import."""

    def test_rsa_keys(self, settings: AuthSettings) -> None:
        keys = SigningKeys(settings)
        assert keys.algorithm == "RS256"
        assert isinstance(keys.private_key, RSAPrivateKey)
        assert isinstance(keys.public_key, RSAPublicKey)

    def test_keys_are_cached(self, settings: AuthSettings) -> None:
        keys = SigningKeys(settings)
        assert keys.private_key is keys.private_key
        assert keys.public_key is keys.public_key

    def test_keys_from_files(self, rsa_keys: tuple[str, str], tmp_path) -> None:
        private_pem, public_pem = rsa_keys
        (tmp_path / "private.pem").write_text(private_pem)
        (tmp_path / "public.pem").write_text(public_pem)
        keys = SigningKeys(
            AuthSettings(
                private_key_path=str(tmp_path / "private.pem"),
                public_key_path=str(tmp_path / "public.pem"),
                issuer=ISSUER,
                audience=AUDIENCE,
            )
        )
        assert isinstance(keys.private_key, RSAPrivateKey)
        assert isinstance(keys.public_key, RSAPublicKey)

    def test_shared_secret(self, hmac_settings: AuthSettings) -> None:
        keys = SigningKeys(hmac_settings)
        assert keys.private_key == hmac_settings.shared_secret.encode()
        assert keys.public_key == keys.private_key

    def test_missing_shared_secret(self) -> None:
        keys = SigningKeys(AuthSettings(algorithm="HS256", issuer=ISSUER, audience=AUDIENCE))
        with pytest.raises(ConfigurationError, match="shared secret"):
            keys.private_key

    def test_missing_key(self) -> None:
        keys = SigningKeys(AuthSettings(issuer=ISSUER, audience=AUDIENCE))
        with pytest.raises(ConfigurationError, match="No private key configured"):
            keys.private_key
        with pytest.raises(ConfigurationError, match="No public key configured"):
            keys.public_key

    def test_unreadable_key_file(self, tmp_path) -> None:
        keys = SigningKeys(
            AuthSettings(private_key_path=str(tmp_path / "missing.pem"), issuer=ISSUER, audience=AUDIENCE)
        )
        with pytest.raises(ConfigurationError, match="Cannot read private key file"):
            keys.private_key

    def test_invalid_pem(self) -> None:
        keys = SigningKeys(AuthSettings(private_key="not a key", issuer=ISSUER, audience=AUDIENCE))
        with pytest.raises(ConfigurationError, match="Failed to import private key"):
            keys.private_key

    def test_concurrent_first_access_imports_once(self, settings: AuthSettings) -> None:
        keys = SigningKeys(settings)
        calls = []
        lock = threading.Lock()
        real_import = signing.load_pem_private_key

        def counting_import(*args, **kwargs):
            with lock:
                calls.append(1)
            return real_import(*args, **kwargs)

        with patch.object(signing, "load_pem_private_key", side_effect=counting_import):
            with ThreadPoolExecutor(max_workers=8) as pool:
                results = list(pool.map(lambda _: keys.private_key, range(16)))

        assert len(calls) == 1
        assert all(result is results[0] for result in results)
