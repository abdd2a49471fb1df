import struct
import zlib

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from flightlog.exceptions import DecryptionFailed
from flightlog.parser.constants import AES_BLOCK_SIZE, AES_KEY_SIZE, CRC_SIZE, IV_SIZE


def decrypt_payload(payload: bytes, key: bytes) -> bytes:
    """
    Decrypt an encrypted payload region and return the plaintext record stream.

    Layout: iv (16 bytes) | AES-256-CBC ciphertext of PKCS7(crc32 | records).
    A wrong key shows up as bad padding or a CRC mismatch.
    """
    if len(key) != AES_KEY_SIZE:
        raise DecryptionFailed(f"Key must be {AES_KEY_SIZE} bytes, got {len(key)}")

    iv, ciphertext = payload[:IV_SIZE], payload[IV_SIZE:]
    if len(iv) < IV_SIZE or not ciphertext or len(ciphertext) % AES_BLOCK_SIZE:
        raise DecryptionFailed("Encrypted payload is truncated")

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(AES_BLOCK_SIZE * 8).unpadder()
    try:
        plaintext = unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise DecryptionFailed("Invalid padding, wrong key or corrupted data") from e

    if len(plaintext) < CRC_SIZE:
        raise DecryptionFailed("Decrypted payload is too short")

    (expected,) = struct.unpack(">I", plaintext[:CRC_SIZE])
    body = plaintext[CRC_SIZE:]
    if zlib.crc32(body) != expected:
        raise DecryptionFailed("Checksum mismatch, wrong key or corrupted data")
    return body

