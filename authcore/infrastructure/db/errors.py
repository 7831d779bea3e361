from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import psycopg

from authcore.domain.errors import StorageUnavailable


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Re-raise any psycopg fault (pool timeouts included) as StorageUnavailable."""
    try:
        yield
    except psycopg.Error as e:
        raise StorageUnavailable(f"{operation} failed: {e}") from e
