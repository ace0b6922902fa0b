import logging
import re
from typing import Any, Dict, Iterator

import pandas as pd

from cdr_analyzer.models.call_record import REQUIRED_COLUMNS

logger = logging.getLogger(__name__)

# Deuxième ligne des exports CUCM: types SQL des colonnes
TYPE_ROW_PATTERN = re.compile(r'^(INTEGER|UNIQUEIDENTIFIER|VARCHAR\(\d+\)|CHAR\(\d+\))$', re.IGNORECASE)


class CdrReader:
    """Lit un fichier CDR (CSV) exporté par l'IPBX."""

    def __init__(self, delimiter: str = ',', encoding: str = 'utf-8'):
        self.delimiter = delimiter
        self.encoding = encoding

    @staticmethod
    def _is_type_row(row: pd.Series) -> bool:
        values = [str(v).strip() for v in row.dropna()]
        if not values:
            return False
        matches = sum(1 for v in values if TYPE_ROW_PATTERN.match(v))
        return matches * 2 >= len(values)

    def read(self, path: str) -> pd.DataFrame:
        """Charge un fichier CDR dans un DataFrame.

        Args:
            path: Chemin du fichier CSV

        Returns:
            DataFrame avec une colonne par champ CDR (valeurs texte)

        Raises:
            OSError: Si le fichier est illisible
            ValueError: Si des colonnes requises sont absentes
        """
        try:
            df = pd.read_csv(path, sep=self.delimiter, encoding=self.encoding, dtype=str,
                             skipinitialspace=True, keep_default_na=False, na_values=[""])
        except pd.errors.EmptyDataError:
            logger.warning(f"Fichier CDR vide: {path}")
            return pd.DataFrame(columns=REQUIRED_COLUMNS)
        except Exception as e:
            logger.error(f"Erreur lors de la lecture du fichier CDR {path}: {e}")
            raise

        df.columns = [str(col).strip() for col in df.columns]

        missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing:
            logger.error(f"Colonnes manquantes dans {path}: {', '.join(missing)}")
            raise ValueError(f"Colonnes CDR manquantes: {', '.join(missing)}")

        if not df.empty and self._is_type_row(df.iloc[0]):
            df = df.iloc[1:].reset_index(drop=True)

        logger.info(f"{len(df)} enregistrements lus depuis {path}")
        return df

    @staticmethod
    def iter_rows(df: pd.DataFrame) -> Iterator[Dict[str, Any]]:
        """Parcourt les lignes d'un DataFrame CDR sous forme de dictionnaires."""
        for _, row in df.iterrows():
            yield row.to_dict()
