import logging
import os
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from cdr_analyzer.infrastructure.cdr_reader import CdrReader
from cdr_analyzer.infrastructure.excel_reporter import ExcelReportWriter
from cdr_analyzer.services.cdr_engine import CdrAggregationEngine

logger = logging.getLogger(__name__)


class CDRAnalyzerApp:
    """Application principale pour l'agrégation des CDR."""

    def __init__(self, config: Dict[str, Union[str, bool, None]]):
        """Initialise l'application d'analyse CDR.

        Args:
            config: Dictionnaire de configuration (voir load_config) contenant:
                - output_dir: Répertoire de sortie par défaut
                - report_prefix: Préfixe du nom du fichier Excel
                - parallel: Calcul des vues en parallèle
                - csv_delimiter: Séparateur du fichier CDR (optionnel)
                - csv_encoding: Encodage du fichier CDR (optionnel)
        """
        self.config = config
        self.reader = CdrReader(
            delimiter=config.get('csv_delimiter') or ',',
            encoding=config.get('csv_encoding') or 'utf-8'
        )
        self.parallel = bool(config.get('parallel', False))

    def _report_filename(self, output_dir: str) -> str:
        timestamp = datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')
        prefix = self.config.get('report_prefix') or 'cdr_usage'
        return os.path.join(output_dir, f"{prefix}_{timestamp}.xlsx")

    def run_analysis(self, input_file: str, output_dir: Optional[str] = None) -> Dict[str, Union[str, int]]:
        """Exécute l'agrégation complète d'un fichier CDR.

        Args:
            input_file: Chemin du fichier CDR
            output_dir: Répertoire de sortie (configuration par défaut sinon)

        Returns:
            Dictionnaire contenant le statut ('success', 'no_data' ou 'error' si le
            rapport n'a pas été écrit), le chemin du rapport et les compteurs
        """
        output_dir = output_dir or self.config.get('output_dir') or './output'

        df_cdr = self.reader.read(input_file)
        engine = CdrAggregationEngine.from_rows(CdrReader.iter_rows(df_cdr))

        if not engine.records:
            logger.warning(f"Aucun enregistrement exploitable dans {input_file}")

        tables = engine.run_all(parallel=self.parallel)
        report = ExcelReportWriter.export(tables, self._report_filename(output_dir))

        if not report:
            status = 'error'
        elif engine.records:
            status = 'success'
        else:
            status = 'no_data'

        result = {
            'status': status,
            'report': report,
            'records': len(engine.records),
            'skipped': engine.skipped_records,
        }
        if status == 'error':
            logger.error(f"Le rapport n'a pas pu être généré: {result}")
        else:
            logger.info(f"Analyse terminée: {result}")
        return result
