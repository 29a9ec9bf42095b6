"""
Bounded reads of streamed ``requests`` responses.

``requests`` timeouts cover the connect and each socket read, never the
whole transfer, so a server dripping one byte at a time can hold a caller
forever. ``read_body`` adds a wall-clock deadline and a size cap.
"""

from __future__ import annotations

import time

import requests
from urllib3.exceptions import HTTPError as Urllib3HTTPError
from urllib3.exceptions import ReadTimeoutError

CHUNK_SIZE = 64 * 1024


class ResponseTooLarge(requests.RequestException):
    """Body is larger than the caller allows."""


def read_body(resp: requests.Response, deadline: float, max_bytes: int) -> bytes:
    """
    Read a ``stream=True`` response to EOF.

    *deadline* is a ``time.monotonic()`` instant. ``read1`` returns as soon
    as the socket has any data, so the deadline is checked between reads
    and a stalled read is still bounded by the request's read timeout.

    Raises ``requests.Timeout`` past the deadline, ``ResponseTooLarge``
    past *max_bytes* and ``requests.ConnectionError`` on transport errors.
    """
    declared = resp.headers.get("Content-Length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise ResponseTooLarge(f"Content-Length {declared} exceeds {max_bytes} bytes")

    chunks = []
    total = 0
    while True:
        if time.monotonic() >= deadline:
            raise requests.Timeout(f"body incomplete at deadline ({total} bytes read)")
        try:
            chunk = resp.raw.read1(CHUNK_SIZE, decode_content=True)
        except ReadTimeoutError as exc:
            raise requests.ReadTimeout(str(exc)) from exc
        except (Urllib3HTTPError, OSError) as exc:
            raise requests.ConnectionError(str(exc)) from exc
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise ResponseTooLarge(f"body exceeds {max_bytes} bytes")
        chunks.append(chunk)
    return b"".join(chunks)
