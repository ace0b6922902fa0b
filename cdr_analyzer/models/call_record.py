import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Correspondance entre les colonnes brutes du CDR et les champs du modèle
COLUMN_MAPPING = {
    'origDeviceName': 'orig_device_name',
    'destDeviceName': 'dest_device_name',
    'origNodeId': 'orig_node_id',
    'destNodeId': 'dest_node_id',
    'callingPartyUnicodeLoginUserID': 'calling_user',
    'finalCalledPartyUnicodeLoginUserID': 'final_called_user',
    'callingPartyNumberPartition': 'calling_partition',
    'originalCalledPartyNumberPartition': 'original_called_partition',
    'originalCalledPartyNumber': 'original_called_number',
    'finalCalledPartyNumber': 'final_called_number',
    'duration': 'duration',
    'dateTimeOrigination': 'started_at',
}

REQUIRED_COLUMNS = list(COLUMN_MAPPING.keys())


class MalformedRecordError(ValueError):
    """Levée lorsqu'un champ obligatoire d'un CDR n'a pas de valeur exploitable."""

    def __init__(self, field: str, raw_value: Any, ordinal: Optional[int] = None):
        self.field = field
        self.raw_value = raw_value
        self.ordinal = ordinal
        super().__init__(f"Enregistrement #{ordinal}: valeur invalide pour {field}: {raw_value!r}")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _clean_text(value: Any) -> Optional[str]:
    """Normalise une valeur texte optionnelle (None, NaN et chaînes vides deviennent None)."""
    if _is_missing(value):
        return None
    if isinstance(value, float) and value.is_integer():
        # Les identifiants numériques lus par pandas arrivent parfois en float
        return str(int(value))
    return str(value).strip()


def _parse_seconds(field: str, value: Any, ordinal: Optional[int]) -> int:
    """Convertit une valeur en nombre entier de secondes positif ou nul.

    Args:
        field: Nom de la colonne d'origine
        value: Valeur brute
        ordinal: Position de l'enregistrement dans la source

    Returns:
        Nombre de secondes

    Raises:
        MalformedRecordError: Si la valeur n'est pas un entier positif ou nul
    """
    if _is_missing(value) or isinstance(value, bool):
        raise MalformedRecordError(field, value, ordinal)
    try:
        number = float(str(value).strip())
    except ValueError:
        raise MalformedRecordError(field, value, ordinal) from None
    if math.isnan(number) or math.isinf(number) or not number.is_integer() or number < 0:
        raise MalformedRecordError(field, value, ordinal)
    return int(number)


@dataclass(frozen=True)
class CallRecord:
    """Représente un CDR (une jambe d'appel) tel que consommé par les agrégateurs."""
    orig_device_name: Optional[str]
    dest_device_name: Optional[str]
    orig_node_id: Optional[str]
    dest_node_id: Optional[str]
    original_called_number: Optional[str]
    final_called_number: Optional[str]
    duration: int
    started_at: datetime
    calling_user: Optional[str] = None
    final_called_user: Optional[str] = None
    calling_partition: Optional[str] = None
    original_called_partition: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any], ordinal: Optional[int] = None) -> 'CallRecord':
        """Construit un CallRecord à partir d'une ligne brute du fichier CDR.

        Args:
            row: Ligne brute (dict ou ligne pandas) indexée par les noms de colonnes CDR
            ordinal: Position de la ligne dans la source, utilisée dans les messages d'erreur

        Returns:
            Enregistrement typé

        Raises:
            MalformedRecordError: Si duration ou dateTimeOrigination sont inexploitables
        """
        duration = _parse_seconds('duration', row.get('duration'), ordinal)
        origination = _parse_seconds('dateTimeOrigination', row.get('dateTimeOrigination'), ordinal)
        try:
            started_at = EPOCH + timedelta(seconds=origination)
        except OverflowError:
            raise MalformedRecordError('dateTimeOrigination', row.get('dateTimeOrigination'), ordinal) from None

        return cls(
            orig_device_name=_clean_text(row.get('origDeviceName')),
            dest_device_name=_clean_text(row.get('destDeviceName')),
            orig_node_id=_clean_text(row.get('origNodeId')),
            dest_node_id=_clean_text(row.get('destNodeId')),
            original_called_number=_clean_text(row.get('originalCalledPartyNumber')),
            final_called_number=_clean_text(row.get('finalCalledPartyNumber')),
            duration=duration,
            started_at=started_at,
            calling_user=_clean_text(row.get('callingPartyUnicodeLoginUserID')),
            final_called_user=_clean_text(row.get('finalCalledPartyUnicodeLoginUserID')),
            calling_partition=_clean_text(row.get('callingPartyNumberPartition')),
            original_called_partition=_clean_text(row.get('originalCalledPartyNumberPartition')),
        )
