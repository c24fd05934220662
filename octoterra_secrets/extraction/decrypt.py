"""Decryption of Octopus sensitive values.

Octopus stores every sensitive value as ``base64(ciphertext)|base64(iv)``,
encrypted with AES in CBC mode under the server's master key and padded
with PKCS#7.
"""

import base64
import binascii

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from octoterra_secrets.exceptions import (
    EncodingError,
    InvalidIVError,
    InvalidKeyError,
    MalformedSecretError,
)

BLOCK_SIZE = algorithms.AES.block_size // 8
VALID_KEY_SIZES = frozenset({16, 24, 32})


def _b64decode(value: str, part: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncodingError(part) from e


def pkcs7_unpad(data: bytes) -> bytes:
    """Strip PKCS#7 padding by trusting the trailing byte as the pad length.

    The padding bytes are not checked for consistency, so legacy values
    written by older servers keep decrypting. A corrupted ciphertext
    therefore yields garbage rather than an error.
    """
    if not data:
        return data
    padding = data[-1]
    return data[:max(len(data) - padding, 0)]


def decrypt_sensitive_value(master_key: str, value: str) -> str:
    """Decrypt a ``ciphertext|iv`` value with the base64 master key.

    Args:
        master_key: Base64 encoded AES key
        value: Encrypted value in ``ciphertext|iv`` form, both base64

    Returns:
        The decrypted plaintext

    Raises:
        MalformedSecretError: If the value is not two pipe separated parts
            or the ciphertext is not a whole number of blocks
        EncodingError: If any part is not valid base64
        InvalidIVError: If the IV is not one block long
        InvalidKeyError: If the master key is not a valid AES key size
    """
    split = value.split("|")
    if len(split) != 2:
        raise MalformedSecretError()

    cipher_text = _b64decode(split[0], "ciphertext")
    iv = _b64decode(split[1], "IV")
    key = _b64decode(master_key, "master key")

    if len(key) not in VALID_KEY_SIZES:
        raise InvalidKeyError(len(key))

    if len(iv) != BLOCK_SIZE:
        raise InvalidIVError(len(iv))

    if not cipher_text or len(cipher_text) % BLOCK_SIZE != 0:
        raise MalformedSecretError(
            f"Ciphertext must be a non-empty multiple of {BLOCK_SIZE} bytes, "
            f"got {len(cipher_text)} bytes"
        )

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    decrypted = decryptor.update(cipher_text) + decryptor.finalize()

    return pkcs7_unpad(decrypted).decode("utf-8", errors="replace")
