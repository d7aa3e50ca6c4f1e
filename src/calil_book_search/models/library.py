"""
Library directory models.

A LibraryRecord is one public library as reported by the Calil library
endpoint. Records are immutable once fetched and live only for the duration
of one resolution.
"""

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Area(BaseModel):
    """
    Administrative area used to scope a library search.

    The city is a refinement filter applied on top of the prefecture, not an
    independent key.
    """

    prefecture: str = Field(
        ...,
        description="Prefecture name in Japanese",
        min_length=1,
        examples=["東京都", "千葉県", "大阪府"],
    )

    city: str | None = Field(
        default=None,
        description="Optional city name used to narrow the prefecture",
        examples=["千葉市", "渋谷区"],
    )

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @field_validator("city")
    @classmethod
    def empty_city_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class LibraryRecord(BaseModel):
    """A single library, tagged with the library system it belongs to."""

    # Identity
    libid: str = Field(default="", description="Calil library ID")
    systemid: str = Field(default="", description="Library system ID (check API fan-out key)")
    systemname: str = Field(default="", description="Library system display name")
    libkey: str = Field(default="", description="Library key within its system")

    # Display
    formal: str = Field(default="", description="Formal library name")
    short: str = Field(default="", description="Short library name")

    # Location
    address: str = ""
    pref: str = ""
    city: str = ""
    post: str = Field(default="", description="Postal code")
    tel: str = ""
    geocode: str = Field(default="", description="Longitude,latitude")
    category: str = Field(default="", description="Category tag such as MEDIUM or UNIV")
    isil: str = ""
    url_pc: str = ""

    # None means the upstream did not report it at all; "" means it reported an empty value
    faid: str | None = None

    model_config = ConfigDict(frozen=True)

    def to_summary(self) -> dict[str, str | None]:
        """Compact representation used in tool responses."""
        return {
            "libid": self.libid,
            "name": self.formal or self.short,
            "systemid": self.systemid,
            "systemname": self.systemname,
            "libkey": self.libkey,
            "address": self.address,
            "tel": self.tel,
            "category": self.category,
            "url": self.url_pc,
        }


def system_ids(libraries: Iterable[LibraryRecord]) -> list[str]:
    """Distinct, non-empty system IDs in the order they were first seen."""
    seen: dict[str, None] = {}
    for library in libraries:
        if library.systemid:
            seen.setdefault(library.systemid, None)
    return list(seen)
