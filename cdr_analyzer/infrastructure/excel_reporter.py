import logging
import os
from typing import List, Sequence, Tuple

import pandas as pd
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from cdr_analyzer.models.report import ReportTable
from cdr_analyzer.services.report_builder import to_dataframe

logger = logging.getLogger(__name__)

# Couleurs standard d'Excel pour les onglets
TAB_COLORS = {
    'Green': '00B050',
    'Purple': '7030A0',
    'Blue': '0070C0',
}

# Ligne de regroupement placée au-dessus des en-têtes des vues d'usage, après le
# groupe d'identification (#, clé, utilisateur, partition)
USAGE_COLUMN_GROUPS: List[Tuple[str, int]] = [
    ('Calls', 3),
    ('Duration (mm:ss)', 3),
    ('Period (UTC)', 2),
]

MAX_COLUMN_WIDTH = 50


class ExcelReportWriter:
    """Exporte les vues agrégées vers un classeur Excel, un onglet par vue."""

    @staticmethod
    def _write_group_header(worksheet: Worksheet, groups: Sequence[Tuple[str, int]]) -> None:
        """Écrit la ligne de regroupement des colonnes (ligne 1)."""
        col = 1
        for label, span in groups:
            cell = worksheet.cell(row=1, column=col, value=label)
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal='center')
            if span > 1:
                worksheet.merge_cells(start_row=1, start_column=col, end_row=1, end_column=col + span - 1)
            col += span

    @staticmethod
    def _autosize_columns(worksheet: Worksheet, df: pd.DataFrame) -> None:
        for i, col in enumerate(df.columns, start=1):
            max_length = max(
                df[col].map(lambda v: len(str(v)) if pd.notna(v) else 0).max() if not df.empty else 0,
                len(str(col))
            ) + 2
            worksheet.column_dimensions[get_column_letter(i)].width = min(max_length, MAX_COLUMN_WIDTH)

    @staticmethod
    def _format_sheet(worksheet: Worksheet, table: ReportTable, df: pd.DataFrame) -> None:
        """Applique couleur d'onglet, volets figés, filtres et largeurs de colonnes."""
        header_row = table.header_rows
        if header_row > 1:
            identity_span = len(df.columns) - sum(span for _, span in USAGE_COLUMN_GROUPS)
            groups = [(str(df.columns[1]), identity_span)] + USAGE_COLUMN_GROUPS
            ExcelReportWriter._write_group_header(worksheet, groups)

        color = TAB_COLORS.get(table.color)
        if color:
            worksheet.sheet_properties.tabColor = color
        else:
            logger.warning(f"Couleur d'onglet inconnue pour {table.name}: {table.color}")

        worksheet.freeze_panes = f"A{header_row + 1}"

        last_col = get_column_letter(len(df.columns))
        last_row = header_row + max(len(df), 1)
        worksheet.auto_filter.ref = f"A{header_row}:{last_col}{last_row}"

        ExcelReportWriter._autosize_columns(worksheet, df)

    @staticmethod
    def export(tables: Sequence[ReportTable], filename: str) -> str:
        """Exporte les tables vers un fichier Excel.

        Args:
            tables: Tables produites par le moteur, dans l'ordre des onglets
            filename: Nom du fichier Excel

        Returns:
            Chemin du fichier créé, ou chaîne vide en cas d'échec
        """
        if not tables:
            logger.warning("Aucune table à exporter vers Excel.")
            return ""

        # Ajout du répertoire si nécessaire
        os.makedirs(os.path.dirname(filename) if os.path.dirname(filename) else '.', exist_ok=True)

        try:
            with pd.ExcelWriter(filename, engine='openpyxl') as writer:
                for table in tables:
                    df = to_dataframe(table)
                    df.to_excel(writer, sheet_name=table.name, index=False, startrow=table.header_rows - 1)
                    ExcelReportWriter._format_sheet(writer.sheets[table.name], table, df)

            logger.info(f"Rapport exporté avec succès vers {filename}")
            return filename
        except Exception as e:
            logger.error(f"Erreur lors de l'export vers Excel: {e}")
            return ""
