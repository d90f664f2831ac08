"""
Security utilities: password hashing, JWT tokens, and card number protection.

This module centralizes all cryptographic operations so they're easy to
audit and update. Three concerns are handled here:

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - passlib's CryptContext with the argon2 scheme

2. JWT TOKENS (JSON Web Tokens)
   - After login, the user receives a signed JWT whose subject is the
     username and which carries the role as a claim
   - Signed with SECRET_KEY using HS256; expires after
     ACCESS_TOKEN_EXPIRE_MINUTES

3. CARD NUMBER PROTECTION
   - hash_card_number(): lowercase hex SHA-256 of the PAN. Deterministic,
     so it serves uniqueness checks and lookups, never confidentiality.
   - CardCipher: AES in CBC mode with PKCS#7 padding, key of 16/24/32
     UTF-8 bytes from configuration. The IV is the first 16 bytes of the
     key, which keeps every stored ciphertext decryptable but makes the
     encryption deterministic per key. Output is standard Base64.
"""

import base64
import hashlib
from datetime import datetime, timedelta, timezone

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from jose import jwt
from passlib.context import CryptContext

from bankcards.config import CryptoConfig, settings
from bankcards.exceptions import CryptoFailureError


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plaintext password using Argon2id."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a stored Argon2 hash."""
    return pwd_context.verify(plain_password, hashed_password)


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    The token payload contains:
      - "sub": The subject (username) — standard JWT claim
      - "role": The authority string of the user's role
      - "exp": Expiration timestamp

    Args:
        data: Dictionary of claims to encode (must include "sub").
        expires_delta: Optional custom expiration time. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


# ---------------------------------------------------------------------------
# 3. Card number protection
# ---------------------------------------------------------------------------

SUPPORTED_ALGORITHMS = frozenset({"AES/CBC/PKCS5PADDING", "AES/CBC/PKCS7PADDING"})
AES_KEY_LENGTHS = (16, 24, 32)
IV_LENGTH = 16


def hash_card_number(card_number: str) -> str:
    """Lowercase hex SHA-256 of the UTF-8 bytes of card_number (64 chars)."""
    return hashlib.sha256(card_number.encode("utf-8")).hexdigest()


class CardCipher:
    """
    Symmetric encryption of card numbers, bound to one CryptoConfig.

    Raises CryptoFailureError at construction for an unsupported
    algorithm or a key that is not 16, 24 or 32 bytes long.
    """

    def __init__(self, config: CryptoConfig):
        if config.algorithm.upper() not in SUPPORTED_ALGORITHMS:
            raise CryptoFailureError(f"Unsupported cipher algorithm: {config.algorithm}")

        key = config.key.encode("utf-8")
        if len(key) not in AES_KEY_LENGTHS:
            raise CryptoFailureError(
                f"Invalid key length {len(key)}: expected one of {AES_KEY_LENGTHS} bytes"
            )

        self._key = key
        self._iv = key[:IV_LENGTH]

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(self._iv))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string and return the standard Base64 of the ciphertext."""
        try:
            padder = padding.PKCS7(algorithms.AES.block_size).padder()
            padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
            encryptor = self._cipher().encryptor()
            ciphertext = encryptor.update(padded) + encryptor.finalize()
        except ValueError as exc:
            raise CryptoFailureError("Encryption failed") from exc
        return base64.b64encode(ciphertext).decode("ascii")

    def decrypt(self, encoded: str) -> str:
        """
        Reverse encrypt().

        Raises:
            CryptoFailureError: If the input is not valid Base64, is not a
                whole number of blocks, or has bad padding.
        """
        try:
            ciphertext = base64.b64decode(encoded, validate=True)
            decryptor = self._cipher().decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except ValueError as exc:
            # binascii.Error and UnicodeDecodeError are both ValueErrors
            raise CryptoFailureError("Decryption failed") from exc


# Process-wide, read-only: built once from settings at import time
card_cipher = CardCipher(settings.crypto)


def encrypt_card_number(card_number: str) -> str:
    return card_cipher.encrypt(card_number)


def decrypt_card_number(encrypted: str) -> str:
    return card_cipher.decrypt(encrypted)
