"""
File hashing utilities.

Cloud Storage reports object checksums as base64-encoded MD5 digests.
"""

import base64
import hashlib


def compute_file_md5_base64(file_path: str, chunk_size: int = 4096) -> str:
    """
    Compute the base64-encoded MD5 digest of a file.

    Args:
        file_path: Path to the file.
        chunk_size: Bytes read per iteration.

    Returns:
        Base64 string, comparable with ``Blob.md5_hash``.
    """
    hash_func = hashlib.md5()

    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hash_func.update(chunk)

    return base64.b64encode(hash_func.digest()).decode("ascii")
