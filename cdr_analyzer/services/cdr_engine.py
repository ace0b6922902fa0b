import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, List, Mapping, Sequence

from cdr_analyzer.models.call_record import CallRecord, MalformedRecordError
from cdr_analyzer.models.report import ReportTable
from cdr_analyzer.services.aggregator import (aggregate_by_device, aggregate_by_phone_number,
                                               aggregate_device_to_phone)
from cdr_analyzer.services.report_builder import (MAPPING_COLUMNS, build_mapping_rows, build_usage_rows,
                                                   usage_columns)

logger = logging.getLogger(__name__)

DEVICE_ANALYSIS = 'Device Analysis'
PHONE_NUMBER_ANALYSIS = 'Phone Number Analysis'
DEVICE_TO_PHONE_MAPPING = 'Device to Phone Mapping'


class CdrAggregationEngine:
    """Produit les trois vues agrégées à partir d'une séquence de CDR.

    Les enregistrements sont figés à la construction; chaque vue est un
    passage indépendant qui construit et jette sa propre table de statistiques.
    """

    def __init__(self, records: Iterable[CallRecord], skipped_records: int = 0):
        """Initialise le moteur.

        Args:
            records: Enregistrements CDR déjà typés
            skipped_records: Nombre de lignes brutes écartées en amont
        """
        self.records = tuple(records)
        self.skipped_records = skipped_records

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]]) -> 'CdrAggregationEngine':
        """Construit le moteur à partir de lignes brutes, en écartant les lignes invalides.

        Args:
            rows: Lignes brutes indexées par les noms de colonnes CDR

        Returns:
            Moteur prêt à produire les vues
        """
        records = []
        skipped = 0
        for ordinal, row in enumerate(rows, start=1):
            try:
                records.append(CallRecord.from_row(row, ordinal))
            except MalformedRecordError as e:
                skipped += 1
                logger.warning(f"Enregistrement #{e.ordinal} ignoré: champ {e.field}, valeur {e.raw_value!r}")

        if skipped:
            logger.warning(f"{skipped} enregistrement(s) invalide(s) ignoré(s) sur {len(records) + skipped}")
        return cls(records, skipped)

    def device_analysis(self) -> ReportTable:
        """Vue d'usage par appareil d'origine."""
        rows = build_usage_rows(aggregate_by_device(self.records))
        return ReportTable(DEVICE_ANALYSIS, 'Green', rows, usage_columns('Device'), header_rows=2)

    def phone_number_analysis(self) -> ReportTable:
        """Vue d'usage par numéro appelé d'origine."""
        rows = build_usage_rows(aggregate_by_phone_number(self.records))
        return ReportTable(PHONE_NUMBER_ANALYSIS, 'Purple', rows, usage_columns('Phone Number'))

    def device_to_phone_mapping(self) -> ReportTable:
        """Vue des numéros appelés distincts par appareil de destination."""
        rows = build_mapping_rows(aggregate_device_to_phone(self.records))
        return ReportTable(DEVICE_TO_PHONE_MAPPING, 'Blue', rows, MAPPING_COLUMNS)

    def run_all(self, parallel: bool = False) -> List[ReportTable]:
        """Produit les trois vues.

        Args:
            parallel: Calcule les vues dans des threads séparés. Une erreur
                dans l'une d'elles interrompt l'ensemble.

        Returns:
            Tables dans l'ordre: appareils, numéros, correspondance
        """
        views: Sequence = (self.device_analysis, self.phone_number_analysis, self.device_to_phone_mapping)

        if not parallel:
            tables = [view() for view in views]
        else:
            with ThreadPoolExecutor(max_workers=len(views)) as executor:
                futures = [executor.submit(view) for view in views]
                # result() relance l'exception du worker en échec
                tables = [future.result() for future in futures]

        logger.info(f"{len(tables)} vues calculées sur {len(self.records)} enregistrements")
        return tables
