from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from cdr_analyzer.models.aggregation_stats import Direction
from cdr_analyzer.models.call_record import CallRecord

# Valeur utilisée par l'export CDR pour un identifiant utilisateur vide
BLANK_USER_PLACEHOLDER = '\\ '


class Perspective(Enum):
    """Point de vue de la clé d'agrégation."""
    DEVICE = 'device'
    PHONE_NUMBER = 'phone_number'


@dataclass(frozen=True)
class Classification:
    """Résultat du classement d'un appel pour une clé donnée."""
    direction: Direction
    user: Optional[str]
    partition: Optional[str]


def normalize_user(user: Optional[str]) -> Optional[str]:
    """Ramène l'identifiant utilisateur vide de l'export à None."""
    if user is None or user == BLANK_USER_PLACEHOLDER or user.strip() in ('', '\\'):
        return None
    return user


def _endpoints(record: CallRecord, perspective: Perspective) -> Tuple[Optional[str], Optional[str]]:
    if perspective is Perspective.DEVICE:
        return record.orig_device_name, record.dest_device_name
    return record.original_called_number, record.final_called_number


def classify(record: CallRecord, key: str, perspective: Perspective = Perspective.DEVICE) -> Classification:
    """Détermine le sens d'un appel et l'utilisateur/partition à attribuer à la clé.

    Les règles sont appliquées dans l'ordre, la première qui s'applique l'emporte:
    même nœud des deux côtés (interne), clé côté appelant, clé côté appelé, aucune.

    Args:
        record: Enregistrement CDR
        key: Clé d'agrégation en cours de mise à jour (appareil ou numéro)
        perspective: Type de clé

    Returns:
        Classification (sens, utilisateur, partition)
    """
    originating, terminating = _endpoints(record, perspective)

    if record.orig_node_id == record.dest_node_id:
        return Classification(Direction.INTERNAL, normalize_user(record.calling_user), record.calling_partition)

    if originating == key:
        return Classification(Direction.CROSS_NODE, normalize_user(record.calling_user),
                              record.original_called_partition)

    if terminating == key:
        return Classification(Direction.CROSS_NODE, normalize_user(record.final_called_user),
                              record.original_called_partition)

    return Classification(Direction.CROSS_NODE, None, None)
