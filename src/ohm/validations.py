"""Validation hook and assertion helpers for models.

A model overrides ``validate`` and calls the assertions; each failed
assertion appends an error code to ``errors[attribute]``::

    class User(Model):
        email = Attribute()

        def validate(self):
            super().validate()
            self.assert_email("email")
"""

from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Container
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

URL = re.compile(
    r"\A(http|https)://([a-z0-9]([a-z0-9\-]{0,61}[a-z0-9])?\.)+[a-z]{2,6}(:[0-9]{1,5})?(/.*)?\Z",
    re.IGNORECASE,
)
EMAIL = re.compile(
    r"\A([\w!#%&'*+\-/=?^`{|}~]+\.)*[\w+\-]+@"
    r"((((([a-z0-9][a-z0-9\-]{0,62}[a-z0-9])|[a-z])\.)+[a-z]{2,6})"
    r"|(\d{1,3}\.){3}\d{1,3}(:\d{1,5})?)\Z",
    re.IGNORECASE,
)
DECIMAL = re.compile(r"\A-?(\d+)?(\.\d+)?\Z")
NUMERIC = re.compile(r"\A-?\d+\Z")


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class Validations:
    """Mixin providing ``is_valid``, ``errors`` and the assertion helpers."""

    @property
    def errors(self) -> defaultdict[str, list[str]]:
        errors = self.__dict__.get("_errors")
        if errors is None:
            errors = defaultdict(list)
            self.__dict__["_errors"] = errors
        return errors

    def is_valid(self) -> bool:
        self.errors.clear()
        self.validate()
        return not any(self.errors.values())

    def validate(self) -> None:
        """Override to declare validations."""

    def value_of(self, att: str) -> Any:
        """The value the assertions check for ``att``."""
        return getattr(self, att)

    def assert_(self, value: Any, error: tuple[str, str]) -> bool:
        if value:
            return True
        attribute, code = error
        self.errors[attribute].append(code)
        return False

    def assert_present(self, att: str, error: tuple[str, str] | None = None) -> bool:
        return self.assert_(_text(self.value_of(att)) != "", error or (att, "not_present"))

    def assert_format(
        self, att: str, pattern: re.Pattern[str] | str, error: tuple[str, str] | None = None
    ) -> bool:
        error = error or (att, "format")
        if not self.assert_present(att, error):
            return False
        return self.assert_(re.search(pattern, _text(self.value_of(att))), error)

    def assert_numeric(self, att: str, error: tuple[str, str] | None = None) -> bool:
        return self.assert_format(att, NUMERIC, error or (att, "not_numeric"))

    def assert_url(self, att: str, error: tuple[str, str] | None = None) -> bool:
        return self.assert_format(att, URL, error or (att, "not_url"))

    def assert_email(self, att: str, error: tuple[str, str] | None = None) -> bool:
        return self.assert_format(att, EMAIL, error or (att, "not_email"))

    def assert_decimal(self, att: str, error: tuple[str, str] | None = None) -> bool:
        return self.assert_format(att, DECIMAL, error or (att, "not_decimal"))

    def assert_member(
        self, att: str, choices: Container[Any], error: tuple[str, str] | None = None
    ) -> bool:
        return self.assert_(self.value_of(att) in choices, error or (att, "not_valid"))

    def assert_length(
        self, att: str, lengths: Container[int], error: tuple[str, str] | None = None
    ) -> bool:
        error = error or (att, "not_in_range")
        if not self.assert_present(att, error):
            return False
        return self.assert_(len(_text(self.value_of(att))) in lengths, error)

    def assert_type(
        self, att: str, raw: Any, type_: Any, error: tuple[str, str] | None = None
    ) -> bool:
        """Check that a raw value coerces to ``type_`` (pydantic lax mode).

        ``type_`` is a type or an already built ``TypeAdapter``.
        """
        if raw is None or raw == "":
            return True
        adapter = type_ if isinstance(type_, TypeAdapter) else TypeAdapter(type_)
        try:
            adapter.validate_python(raw)
        except PydanticValidationError:
            return self.assert_(False, error or (att, "not_valid"))
        return True
