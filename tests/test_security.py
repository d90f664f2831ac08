"""
Tests for the cryptographic primitives in bankcards.security.

These tests verify:
  - The card number digest is a deterministic lowercase hex SHA-256
  - AES encryption round-trips any string, including empty and non-ASCII
  - Encryption is deterministic for a given key (fixed IV)
  - Malformed ciphertexts fail with CryptoFailureError, never garbage
  - Bad key lengths and unsupported algorithms are rejected up front
  - Passwords are stored as Argon2 hashes and JWTs carry username and role
"""

import base64

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from jose import JWTError, jwt

from bankcards.config import CryptoConfig
from bankcards.exceptions import CryptoFailureError
from bankcards.security import (
    CardCipher,
    create_access_token,
    decode_access_token,
    hash_card_number,
    hash_password,
    verify_password,
)

KEY_32 = "12345678901234567890123456789012"


@pytest.fixture
def cipher():
    return CardCipher(CryptoConfig(key=KEY_32, algorithm="AES/CBC/PKCS5Padding"))


class TestCardNumberDigest:

    def test_known_digest(self):
        assert hash_card_number("") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_digest_is_64_lowercase_hex(self):
        digest = hash_card_number("4111111111111111")
        assert len(digest) == 64
        assert digest == digest.lower()
        int(digest, 16)

    def test_digest_is_deterministic(self):
        assert hash_card_number("4111111111111111") == hash_card_number("4111111111111111")
        assert hash_card_number("4111111111111111") != hash_card_number("5555555555554444")


class TestCardCipher:

    @pytest.mark.parametrize("plaintext", ["4111111111111111", "", "Карта №1 ✓"])
    def test_round_trip(self, cipher, plaintext):
        assert cipher.decrypt(cipher.encrypt(plaintext)) == plaintext

    def test_ciphertext_is_base64_of_whole_blocks(self, cipher):
        encoded = cipher.encrypt("4111111111111111")
        raw = base64.b64decode(encoded, validate=True)
        # 16 bytes of input + a full block of PKCS#7 padding
        assert len(raw) == 32

    def test_encryption_is_deterministic_per_key(self, cipher):
        assert cipher.encrypt("4111111111111111") == cipher.encrypt("4111111111111111")

    def test_ciphertext_does_not_contain_plaintext(self, cipher):
        assert "4111111111111111" not in cipher.encrypt("4111111111111111")

    def test_different_keys_produce_different_ciphertexts(self, cipher):
        other = CardCipher(CryptoConfig(key="abcdefghijklmnop", algorithm="AES/CBC/PKCS5Padding"))
        assert other.encrypt("4111111111111111") != cipher.encrypt("4111111111111111")

    def test_invalid_base64_is_crypto_failure(self, cipher):
        with pytest.raises(CryptoFailureError):
            cipher.decrypt("not base64 at all!!")

    def test_ciphertext_not_multiple_of_block_is_crypto_failure(self, cipher):
        with pytest.raises(CryptoFailureError):
            cipher.decrypt(base64.b64encode(b"short").decode())

    def test_bad_padding_is_crypto_failure(self, cipher):
        # One block of zero bytes, encrypted without padding
        key = KEY_32.encode()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(key[:16])).encryptor()
        raw = encryptor.update(b"\x00" * 16) + encryptor.finalize()
        with pytest.raises(CryptoFailureError):
            cipher.decrypt(base64.b64encode(raw).decode())

    @pytest.mark.parametrize("key", ["", "short", "x" * 17, "x" * 33])
    def test_bad_key_length_is_rejected(self, key):
        with pytest.raises(CryptoFailureError):
            CardCipher(CryptoConfig(key=key, algorithm="AES/CBC/PKCS5Padding"))

    @pytest.mark.parametrize("length", [16, 24, 32])
    def test_supported_key_lengths(self, length):
        cipher = CardCipher(CryptoConfig(key="k" * length, algorithm="AES/CBC/PKCS7Padding"))
        assert cipher.decrypt(cipher.encrypt("4111111111111111")) == "4111111111111111"

    def test_unsupported_algorithm_is_rejected(self):
        with pytest.raises(CryptoFailureError):
            CardCipher(CryptoConfig(key=KEY_32, algorithm="AES/ECB/PKCS5Padding"))


class TestPasswordsAndTokens:

    def test_password_hash_verifies(self):
        hashed = hash_password("SecurePass123!")
        assert hashed != "SecurePass123!"
        assert hashed.startswith("$argon2")
        assert verify_password("SecurePass123!", hashed)
        assert not verify_password("wrong", hashed)

    def test_token_carries_subject_and_role(self):
        token = create_access_token({"sub": "alice", "role": "ROLE_USER"})
        payload = decode_access_token(token)
        assert payload["sub"] == "alice"
        assert payload["role"] == "ROLE_USER"
        assert "exp" in payload

    def test_token_signed_with_other_key_is_rejected(self):
        token = jwt.encode({"sub": "alice"}, "some-other-key", algorithm="HS256")
        with pytest.raises(JWTError):
            decode_access_token(token)
