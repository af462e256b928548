"""
Tests for the compact JWS codec.
"""

import jwt
import pytest
from jwt.utils import base64url_decode, base64url_encode

import rest_security as m
from rest_security.codec import supported_algorithms

CLAIMS = {"name": "admin", "iat": 1_700_000_000}


def _flip_bit(token: str, segment: int, index: int) -> str:
    """Flip the lowest bit of one decoded byte of a token segment."""
    parts = token.split(".")
    raw = bytearray(base64url_decode(parts[segment]))
    raw[index] ^= 0x01
    parts[segment] = base64url_encode(bytes(raw)).decode("ascii")
    return ".".join(parts)


class TestHMAC:
    """Test symmetric signing."""

    def test_roundtrip(self, codec: m.JWTCodec):
        assert codec.decode(codec.encode(CLAIMS)) == CLAIMS

    def test_header_carries_typ_and_alg(self, codec: m.JWTCodec):
        token = codec.encode(CLAIMS)
        assert token.count(".") == 2
        header = jwt.get_unverified_header(token)
        assert header["typ"] == "JWT"
        assert header["alg"] == "HS256"

    def test_other_key_is_rejected(self, codec: m.JWTCodec):
        other = m.JWTCodec("HS256", "a-completely-different-signing-key-value")
        with pytest.raises(m.InvalidToken):
            other.decode(codec.encode(CLAIMS))

    def test_other_algorithm_is_rejected(self, codec: m.JWTCodec):
        hs512 = m.JWTCodec("HS512", "test-signing-key-that-is-long-enough-for-hs256" * 2)
        with pytest.raises(m.InvalidToken):
            codec.decode(hs512.encode(CLAIMS))

    @pytest.mark.parametrize("segment", [1, 2])
    @pytest.mark.parametrize("index", [0, 5, -1])
    def test_single_bit_perturbation_is_rejected(self, codec: m.JWTCodec, segment, index):
        token = _flip_bit(codec.encode(CLAIMS), segment, index)
        with pytest.raises(m.InvalidToken):
            codec.decode(token)

    @pytest.mark.parametrize(
        "token",
        ["", "invalid.token.specified", "only.two", "a.b.c.d", "not a token at all"],
    )
    def test_malformed_tokens_are_rejected(self, codec: m.JWTCodec, token):
        with pytest.raises(m.InvalidToken):
            codec.decode(token)

    def test_non_object_payload_is_rejected(self, codec: m.JWTCodec):
        token = jwt.api_jws.encode(
            b"[1, 2, 3]", "test-signing-key-that-is-long-enough-for-hs256", algorithm="HS256"
        )
        with pytest.raises(m.InvalidToken):
            codec.decode(token)

    def test_codec_does_not_check_claim_semantics(self, codec: m.JWTCodec):
        """Ancient iat and missing name still decode; validation is a separate step."""
        assert codec.decode(codec.encode({"iat": 0})) == {"iat": 0}


class TestConfiguration:
    """Test algorithm and key resolution."""

    @pytest.mark.parametrize("algorithm", ["none", "HS999", ""])
    def test_unsupported_algorithm(self, algorithm):
        with pytest.raises(m.ConfigError):
            m.JWTCodec(algorithm, "key")

    def test_empty_key(self):
        with pytest.raises(m.ConfigError):
            m.JWTCodec("HS256", "")

    def test_supported_algorithms_excludes_none(self):
        algorithms = supported_algorithms()
        assert "HS256" in algorithms
        assert "none" not in algorithms

    def test_asymmetric_requires_pem(self):
        with pytest.raises(m.ConfigError):
            m.JWTCodec("RS256", "definitely not a pem key")


class TestRSA:
    """Test asymmetric signing with PEM keys."""

    def test_roundtrip_with_private_key(self, rsa_private_pem: bytes):
        codec = m.JWTCodec("RS256", rsa_private_pem)
        token = codec.encode(CLAIMS)

        assert jwt.get_unverified_header(token)["alg"] == "RS256"
        assert codec.decode(token) == CLAIMS

    def test_public_key_codec_verifies_only(self, rsa_private_pem: bytes, rsa_public_pem: bytes):
        signer = m.JWTCodec("RS256", rsa_private_pem)
        verifier = m.JWTCodec("RS256", rsa_public_pem)

        assert verifier.decode(signer.encode(CLAIMS)) == CLAIMS
        with pytest.raises(m.InternalError):
            verifier.encode(CLAIMS)

    def test_hmac_token_rejected_by_rsa_codec(self, codec: m.JWTCodec, rsa_private_pem: bytes):
        with pytest.raises(m.InvalidToken):
            m.JWTCodec("RS256", rsa_private_pem).decode(codec.encode(CLAIMS))
