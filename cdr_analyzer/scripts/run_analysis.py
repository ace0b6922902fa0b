import argparse
import logging
import sys

from cdr_analyzer.config.settings import VALID_LOG_LEVELS, configure_logging, load_config
from cdr_analyzer.services.app import CDRAnalyzerApp

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    """Fonction principale pour l'exécution du script.

    Returns:
        Code de sortie: 0 si le rapport est écrit, 1 si le fichier CDR est
        illisible ou si le rapport n'a pas pu être généré, 2 si la
        configuration est invalide
    """
    parser = argparse.ArgumentParser(description="Agrège un fichier CDR en rapport Excel d'usage.")

    try:
        config = load_config()
    except ValueError as e:
        parser.error(str(e))

    parser.add_argument('input_file', help="Fichier CDR (CSV) à analyser")
    parser.add_argument('--output-dir', default=config['output_dir'], help="Répertoire de sortie")
    parser.add_argument('--parallel', action='store_true', default=config['parallel'],
                        help="Calcule les trois vues en parallèle")
    parser.add_argument('--log-level', type=str.upper, choices=VALID_LOG_LEVELS,
                        default=config['log_level'], help="Niveau de log")
    args = parser.parse_args(argv)

    configure_logging(args.log_level, config['log_file'])

    # Création de l'application d'analyse
    analyzer_app = CDRAnalyzerApp({**config, 'parallel': args.parallel})
    try:
        result = analyzer_app.run_analysis(args.input_file, args.output_dir)
    except (OSError, ValueError) as e:
        logger.error(f"Impossible de lire {args.input_file}: {e}")
        return 1

    print(result)
    return 0 if result['status'] != 'error' else 1


if __name__ == '__main__':
    sys.exit(main())
