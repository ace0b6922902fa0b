from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Set

PHONE_NUMBER_MARKER = '#'


class Direction(Enum):
    """Sens d'un appel du point de vue de la clé d'agrégation."""
    INTERNAL = 'internal'  # même nœud des deux côtés, compté comme sortant
    CROSS_NODE = 'cross_node'  # compté comme entrant


class AggregationInvariantError(RuntimeError):
    """Erreur interne: les statistiques agrégées sont incohérentes."""


@dataclass
class AggregationStats:
    """Statistiques cumulées pour une clé d'agrégation (appareil ou numéro)."""
    first_call_at: datetime
    last_call_at: datetime
    user: Optional[str] = None
    partition: Optional[str] = None
    inbound_calls: int = 0
    inbound_seconds: int = 0
    outbound_calls: int = 0
    outbound_seconds: int = 0
    total_calls: int = 0
    total_seconds: int = 0

    @classmethod
    def start(cls, timestamp: datetime, user: Optional[str] = None,
              partition: Optional[str] = None) -> 'AggregationStats':
        """Crée les statistiques d'une clé vue pour la première fois."""
        return cls(first_call_at=timestamp, last_call_at=timestamp, user=user, partition=partition)

    def add_call(self, direction: Direction, duration: int, timestamp: datetime) -> None:
        """Intègre un appel dans les compteurs.

        Args:
            direction: Sens de l'appel retourné par le classificateur
            duration: Durée en secondes
            timestamp: Heure de début de l'appel (UTC)
        """
        if timestamp < self.first_call_at:
            self.first_call_at = timestamp
        if timestamp > self.last_call_at:
            self.last_call_at = timestamp

        if direction is Direction.INTERNAL:
            self.outbound_calls += 1
            self.outbound_seconds += duration
        else:
            self.inbound_calls += 1
            self.inbound_seconds += duration

        self.total_calls += 1
        self.total_seconds += duration
        self.check_invariants()

    def check_invariants(self) -> None:
        """Vérifie la cohérence des compteurs et des bornes temporelles.

        Raises:
            AggregationInvariantError: Si une incohérence est détectée
        """
        if self.total_calls != self.inbound_calls + self.outbound_calls:
            raise AggregationInvariantError(
                f"total_calls={self.total_calls} != {self.inbound_calls} + {self.outbound_calls}")
        if self.total_seconds != self.inbound_seconds + self.outbound_seconds:
            raise AggregationInvariantError(
                f"total_seconds={self.total_seconds} != {self.inbound_seconds} + {self.outbound_seconds}")
        if self.first_call_at > self.last_call_at:
            raise AggregationInvariantError(
                f"first_call_at={self.first_call_at} postérieur à last_call_at={self.last_call_at}")


@dataclass
class DeviceToPhoneMapping:
    """Ensemble des numéros appelés distincts pour un appareil."""
    numbers: Set[str] = field(default_factory=set)

    def add(self, number: str) -> None:
        """Ajoute un numéro préfixé du marqueur; les doublons sont ignorés."""
        self.numbers.add(f"{PHONE_NUMBER_MARKER}{number}")

    @property
    def count(self) -> int:
        """Nombre de numéros distincts."""
        return len(self.numbers)

    def joined(self) -> str:
        """Numéros triés, séparés par des virgules."""
        return ", ".join(sorted(self.numbers))
