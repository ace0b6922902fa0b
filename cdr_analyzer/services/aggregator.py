import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

from cdr_analyzer.models.aggregation_stats import AggregationStats, DeviceToPhoneMapping
from cdr_analyzer.models.call_record import CallRecord
from cdr_analyzer.services.direction_classifier import Perspective, classify

logger = logging.getLogger(__name__)


class UsageAggregator(ABC):
    """Agrège des CDR en statistiques d'usage par clé.

    Chaque instance possède sa propre table de statistiques: rien ne survit
    d'une exécution à l'autre.
    """

    perspective = Perspective.DEVICE

    def __init__(self):
        self.stats: Dict[str, AggregationStats] = {}

    @abstractmethod
    def key_for(self, record: CallRecord) -> Optional[str]:
        """Retourne la clé d'agrégation d'un enregistrement, None pour l'ignorer."""

    def add(self, record: CallRecord) -> None:
        """Intègre un enregistrement dans les statistiques.

        Args:
            record: Enregistrement CDR
        """
        key = self.key_for(record)
        if not key:
            logger.debug(f"Enregistrement ignoré pour la vue {self.perspective.value}: clé absente")
            return

        classification = classify(record, key, self.perspective)
        stats = self.stats.get(key)
        if stats is None:
            # Seule l'attribution de la première occurrence est conservée
            stats = AggregationStats.start(record.started_at, classification.user, classification.partition)
            self.stats[key] = stats

        stats.add_call(classification.direction, record.duration, record.started_at)

    def aggregate(self, records: Iterable[CallRecord]) -> Dict[str, AggregationStats]:
        """Agrège une séquence d'enregistrements.

        Args:
            records: Enregistrements CDR, dans l'ordre de la source

        Returns:
            Dictionnaire clé -> statistiques, dans l'ordre de première apparition
        """
        for record in records:
            self.add(record)
        logger.info(f"Vue {self.perspective.value}: {len(self.stats)} clés agrégées")
        return self.stats


class DeviceAggregator(UsageAggregator):
    """Statistiques par appareil d'origine."""

    perspective = Perspective.DEVICE

    def key_for(self, record: CallRecord) -> Optional[str]:
        return record.orig_device_name


class PhoneNumberAggregator(UsageAggregator):
    """Statistiques par numéro appelé d'origine."""

    perspective = Perspective.PHONE_NUMBER

    def key_for(self, record: CallRecord) -> Optional[str]:
        return record.original_called_number


class DeviceToPhoneAggregator:
    """Regroupe les numéros appelés distincts par appareil de destination."""

    def __init__(self):
        self.mappings: Dict[str, DeviceToPhoneMapping] = {}

    def add(self, record: CallRecord) -> None:
        if not record.dest_device_name or not record.final_called_number:
            return
        mapping = self.mappings.setdefault(record.dest_device_name, DeviceToPhoneMapping())
        mapping.add(record.final_called_number)

    def aggregate(self, records: Iterable[CallRecord]) -> Dict[str, DeviceToPhoneMapping]:
        for record in records:
            self.add(record)
        logger.info(f"Vue appareil -> numéros: {len(self.mappings)} appareils")
        return self.mappings


def aggregate_by_device(records: Iterable[CallRecord]) -> Dict[str, AggregationStats]:
    return DeviceAggregator().aggregate(records)


def aggregate_by_phone_number(records: Iterable[CallRecord]) -> Dict[str, AggregationStats]:
    return PhoneNumberAggregator().aggregate(records)


def aggregate_device_to_phone(records: Iterable[CallRecord]) -> Dict[str, DeviceToPhoneMapping]:
    return DeviceToPhoneAggregator().aggregate(records)
