"""Package scanned by the registry tests."""

from __future__ import annotations

from beancheck.beans import Bean


class Address(Bean):
    street: str
    city: str
