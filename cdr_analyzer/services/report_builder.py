import logging
from datetime import datetime, timezone
from typing import List, Mapping, Tuple, Union

import pandas as pd

from cdr_analyzer.models.aggregation_stats import AggregationStats, DeviceToPhoneMapping
from cdr_analyzer.models.report import NO_DATA, MappingRow, NoData, ReportRow, ReportTable

logger = logging.getLogger(__name__)

NO_DATA_LABEL = 'No data'

MAPPING_COLUMNS = ('#', 'Device', 'Count', 'Phone Numbers')


def usage_columns(key_label: str) -> Tuple[str, ...]:
    """En-têtes de colonnes d'une vue d'usage, la colonne clé étant nommée key_label."""
    return (
        '#', key_label, 'User', 'Partition',
        'Inbound Calls', 'Outbound Calls', 'Total Calls',
        'Inbound Duration', 'Outbound Duration', 'Total Duration',
        'First Call', 'Last Call',
    )


def format_duration(seconds: int) -> str:
    """Formate une durée en secondes au format mm:ss.

    Les minutes ne sont pas ramenées en heures (3600 s -> "60:00").

    Args:
        seconds: Nombre de secondes

    Returns:
        Durée formatée
    """
    if pd.isna(seconds) or seconds == 0:
        return "00:00"

    minutes, seconds = divmod(int(seconds), 60)
    return f"{minutes:02d}:{seconds:02d}"


def format_timestamp(value: datetime) -> str:
    """Formate un horodatage au format yyyy-MM-dd HH:mm:ss.fff (UTC)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]


def build_usage_rows(stats: Mapping[str, AggregationStats]) -> Union[List[ReportRow], NoData]:
    """Convertit des statistiques d'usage en lignes de rapport triées.

    Tri décroissant sur le nombre total d'appels puis sur la durée totale
    (comparaison numérique, jamais sur le texte formaté). À égalité, l'ordre
    de première apparition des clés est conservé.

    Args:
        stats: Dictionnaire clé -> statistiques

    Returns:
        Lignes numérotées de 1 à N, ou NO_DATA si aucune statistique
    """
    if not stats:
        return NO_DATA

    df = pd.DataFrame([{
        'key': key,
        'user': entry.user,
        'partition': entry.partition,
        'inbound_calls': entry.inbound_calls,
        'outbound_calls': entry.outbound_calls,
        'total_calls': entry.total_calls,
        'inbound_seconds': entry.inbound_seconds,
        'outbound_seconds': entry.outbound_seconds,
        'total_seconds': entry.total_seconds,
        'first_call': format_timestamp(entry.first_call_at),
        'last_call': format_timestamp(entry.last_call_at),
    } for key, entry in stats.items()])

    df = df.sort_values(['total_calls', 'total_seconds'], ascending=[False, False], kind='mergesort')
    df = df.reset_index(drop=True)

    logger.debug(f"{len(df)} lignes d'usage triées")

    # La numérotation suit l'ordre de sortie
    df['row_number'] = range(1, len(df) + 1)

    # Formatage des durées uniquement après le tri
    for col in ['inbound', 'outbound', 'total']:
        df[f'{col}_duration'] = df[f'{col}_seconds'].apply(format_duration)

    return [
        ReportRow(
            row_number=int(row['row_number']),
            key=row['key'],
            user=row['user'] if pd.notna(row['user']) else None,
            partition=row['partition'] if pd.notna(row['partition']) else None,
            inbound_calls=int(row['inbound_calls']),
            outbound_calls=int(row['outbound_calls']),
            total_calls=int(row['total_calls']),
            inbound_duration=row['inbound_duration'],
            outbound_duration=row['outbound_duration'],
            total_duration=row['total_duration'],
            first_call=row['first_call'],
            last_call=row['last_call'],
        )
        for _, row in df.iterrows()
    ]


def build_mapping_rows(mappings: Mapping[str, DeviceToPhoneMapping]) -> Union[List[MappingRow], NoData]:
    """Convertit la correspondance appareil -> numéros en lignes triées.

    Tri décroissant sur le nombre de numéros, puis croissant sur l'appareil
    et sur la liste des numéros (membres triés avant jointure).

    Args:
        mappings: Dictionnaire appareil -> numéros appelés

    Returns:
        Lignes numérotées de 1 à N, ou NO_DATA si aucune correspondance
    """
    if not mappings:
        return NO_DATA

    df = pd.DataFrame([{
        'device': device,
        'count': mapping.count,
        'numbers': mapping.joined(),
    } for device, mapping in mappings.items()])

    df = df.sort_values(['count', 'device', 'numbers'], ascending=[False, True, True], kind='mergesort')
    df = df.reset_index(drop=True)
    logger.debug(f"{len(df)} lignes de correspondance triées")

    return [
        MappingRow(row_number=i, device=row['device'], count=int(row['count']), numbers=row['numbers'])
        for i, (_, row) in enumerate(df.iterrows(), start=1)
    ]


def _row_values(row: Union[ReportRow, MappingRow]) -> list:
    if isinstance(row, MappingRow):
        return [row.row_number, row.device, row.count, row.numbers]
    return [row.row_number, row.key, row.user, row.partition,
            row.inbound_calls, row.outbound_calls, row.total_calls,
            row.inbound_duration, row.outbound_duration, row.total_duration,
            row.first_call, row.last_call]


def to_dataframe(table: ReportTable) -> pd.DataFrame:
    """Convertit une table de rapport en DataFrame prêt à l'export.

    La sentinelle NO_DATA devient une ligne unique portant le libellé "No data".

    Args:
        table: Table produite par le moteur

    Returns:
        DataFrame avec les en-têtes de colonnes du rapport
    """
    columns = list(table.columns)

    if not table.has_data:
        empty_row = {col: '' for col in columns}
        empty_row[columns[0]] = NO_DATA_LABEL
        return pd.DataFrame([empty_row], columns=columns)

    return pd.DataFrame([_row_values(row) for row in table.rows], columns=columns)
