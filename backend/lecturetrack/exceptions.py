"""
Exceptions métier levées par les services et traduites en codes HTTP par les routers.

Elles héritent de ValueError : un appelant qui ne connaît que ValueError
continue de les intercepter.
"""


class DomainError(ValueError):
    """Violation d'une règle métier."""


class NotFoundError(DomainError):
    """Entité référencée introuvable."""


class ConflictError(DomainError):
    """Demande ouverte déjà existante ou transition perdue face à une écriture concurrente."""


class InvalidStateError(DomainError):
    """Transition demandée depuis un statut qui ne l'autorise pas."""


class ForbiddenError(DomainError):
    """L'utilisateur n'a pas le rôle requis pour l'action."""
