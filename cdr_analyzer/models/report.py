from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union


class NoData:
    """Sentinelle signalant une vue sans aucune donnée à afficher."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'NO_DATA'

    def __bool__(self) -> bool:
        return False


NO_DATA = NoData()


@dataclass(frozen=True)
class ReportRow:
    """Ligne finale d'un rapport d'usage (par appareil ou par numéro)."""
    row_number: int
    key: str
    user: Optional[str]
    partition: Optional[str]
    inbound_calls: int
    outbound_calls: int
    total_calls: int
    inbound_duration: str
    outbound_duration: str
    total_duration: str
    first_call: str
    last_call: str


@dataclass(frozen=True)
class MappingRow:
    """Ligne finale du rapport appareil -> numéros appelés."""
    row_number: int
    device: str
    count: int
    numbers: str


Rows = Union[Sequence[Union[ReportRow, MappingRow]], NoData]


@dataclass(frozen=True)
class ReportTable:
    """Résultat d'une vue: lignes ordonnées, nom d'onglet et couleur d'accent.

    `rows` vaut NO_DATA (et jamais une liste vide) lorsque la vue est vide.
    `header_rows` indique le nombre de lignes d'en-tête à figer au rendu.
    """
    name: str
    color: str
    rows: Rows
    columns: Tuple[str, ...]
    header_rows: int = 1

    @property
    def has_data(self) -> bool:
        return self.rows is not NO_DATA

    def row_list(self) -> List[Union[ReportRow, MappingRow]]:
        return list(self.rows) if self.has_data else []
