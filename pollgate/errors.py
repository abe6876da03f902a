"""Storage-side failures raised by the backing stores.

Authorization denials and validation rejections are *not* exceptions; they
are returned as :class:`~pollgate.auth.decision.Decision` and
:class:`~pollgate.moderation.models.Rejection` values.
"""

from __future__ import annotations


class StorageError(Exception):
    """A backing store could not complete a fetch or update."""


class RecordNotFound(StorageError):
    """The requested record does not exist."""


class CircularPolicyError(StorageError):
    """The store's own access policy referenced itself while evaluating a query.

    PostgreSQL reports this as SQLSTATE ``42P17`` (infinite recursion in a
    row-level security policy).  Adapters should translate that code into
    this exception so the profile gate can tell it apart from a missing row.
    """

    sqlstate = "42P17"
