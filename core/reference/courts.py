"""County court address reference table for Colorado FED filings."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class CourtAddress:
    """Street address of one county court clerk's office."""

    street: str
    city: str
    state: str
    zip_code: str

    def one_line(self) -> str:
        return f"{self.street}, {self.city}, {self.state} {self.zip_code}"


class ReferenceTable:
    """Read-only keyed records; keys compare case-insensitively."""

    def __init__(self, records: Mapping[str, CourtAddress]) -> None:
        normalized = {normalize_key(key): record for key, record in records.items()}
        if len(normalized) != len(records):
            raise ValueError("Reference table keys collide after normalization")
        self._records: Mapping[str, CourtAddress] = MappingProxyType(normalized)

    def lookup(self, key: str | None) -> CourtAddress | None:
        if not key:
            return None
        return self._records.get(normalize_key(key))

    def keys(self) -> list[str]:
        return sorted(self._records)

    def __len__(self) -> int:
        return len(self._records)


def normalize_key(key: str) -> str:
    return key.strip().lower()


COURT_ADDRESSES = ReferenceTable(
    {
        "adams": CourtAddress("1100 JUDICIAL CENTER DR.", "BRIGHTON", "CO", "80601"),
        "arapahoe": CourtAddress("7325 S. POTOMAC ST.", "CENTENNIAL", "CO", "80112"),
        "boulder": CourtAddress("1777 6TH ST.", "BOULDER", "CO", "80302"),
        "broomfield": CourtAddress("17 DESCOMBES DR.", "BROOMFIELD", "CO", "80020"),
        "denver": CourtAddress("1437 BANNOCK ST.", "DENVER", "CO", "80202"),
        "douglas": CourtAddress("4000 JUSTICE WAY", "CASTLE ROCK", "CO", "80109"),
        "el paso": CourtAddress("270 S. TEJON ST.", "COLORADO SPRINGS", "CO", "80903"),
        "jefferson": CourtAddress("100 JEFFERSON COUNTY PKWY.", "GOLDEN", "CO", "80401"),
        "larimer": CourtAddress("201 LAPORTE AVE.", "FORT COLLINS", "CO", "80521"),
        "pueblo": CourtAddress("501 N. ELIZABETH ST.", "PUEBLO", "CO", "81003"),
        "weld": CourtAddress("901 9TH AVE.", "GREELEY", "CO", "80631"),
    }
)
