import logging
import os
from typing import Dict, Mapping, Optional, Union

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def load_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Union[str, bool, None]]:
    """Construit la configuration de l'application depuis les variables d'environnement.

    Variables reconnues (toutes optionnelles):
        - CDR_OUTPUT_DIR: Répertoire de sortie des rapports (défaut: ./output)
        - CDR_REPORT_PREFIX: Préfixe du nom du fichier Excel (défaut: cdr_usage)
        - CDR_PARALLEL: Calcul des vues en parallèle, true/false (défaut: false)
        - CDR_LOG_LEVEL: Niveau de log (défaut: INFO)
        - CDR_LOG_FILE: Fichier de log des erreurs (optionnel)
        - CDR_CSV_DELIMITER: Séparateur du fichier CDR (défaut: ,)
        - CDR_CSV_ENCODING: Encodage du fichier CDR (défaut: utf-8)

    Args:
        environ: Variables d'environnement (os.environ par défaut)

    Returns:
        Dictionnaire de configuration

    Raises:
        ValueError: Si le niveau de log est inconnu
    """
    environ = os.environ if environ is None else environ

    log_level = environ.get('CDR_LOG_LEVEL', 'INFO').upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ValueError(f"CDR_LOG_LEVEL doit être l'une des valeurs {VALID_LOG_LEVELS}: {log_level}")

    return {
        'output_dir': environ.get('CDR_OUTPUT_DIR', './output'),
        'report_prefix': environ.get('CDR_REPORT_PREFIX', 'cdr_usage'),
        'parallel': environ.get('CDR_PARALLEL', 'false').lower() == 'true',
        'log_level': log_level,
        'log_file': environ.get('CDR_LOG_FILE') or None,
        'csv_delimiter': environ.get('CDR_CSV_DELIMITER', ','),
        'csv_encoding': environ.get('CDR_CSV_ENCODING', 'utf-8'),
    }


def configure_logging(level: str = 'INFO', log_file: Optional[str] = None) -> None:
    """Configure la journalisation: console, et fichier pour les erreurs si demandé."""
    handlers = [logging.StreamHandler()]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.WARNING)
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

