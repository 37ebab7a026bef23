"""
Exceptions métier de l'application.
Projet: SODIPAS (Gestion grossiste fruits)

Définit les exceptions propres au domaine pour une gestion
centralisée des erreurs.

NOTE: BusinessValidationError est volontairement distincte de pydantic.ValidationError.
- pydantic.ValidationError: erreurs de format/type des données d'entrée (FastAPI → 422)
- BusinessValidationError: violations des règles de gestion (notre handler → 422)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "DuplicateError",
    "BusinessValidationError",
    "ValidationError",       # alias de BusinessValidationError
    "PreconditionError",
    "ConflictError",
    "CollaboratorError",
    "AuthorizationError",
]


class AppException(Exception):
    """
    Exception de base de l'application.

    Toutes les exceptions métier héritent de cette classe.

    Attributes:
        status_code: Code HTTP renvoyé au client
        error_code: Identifiant unique de l'erreur pour le frontend
        detail: Message lisible par l'utilisateur
        extra: Données complémentaires pour le frontend
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.detail = detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(detail)


class NotFoundError(AppException):
    """
    Ressource introuvable.

    Levée quand une entité (client, facture, camion) n'existe pas
    ou n'appartient pas au propriétaire attendu.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        detail: str = "Ressource introuvable",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class DuplicateError(AppException):
    """
    Tentative de création d'une ressource déjà existante.

    Exemple: numéro de téléphone client déjà enregistré.
    """

    status_code: int = 409
    error_code: str = "DUPLICATE_RESOURCE"

    def __init__(
        self,
        detail: str = "Ressource déjà existante",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class BusinessValidationError(ValueError, AppException):
    """
    Violation d'une règle de gestion.

    Hérite de ValueError pour être interceptée par les validateurs Pydantic.

    Exemples:
        - "Le montant du paiement doit être positif"
        - "Impossible de retirer plus de cageots que le solde : 17 disponibles"
        - "Veuillez sélectionner au moins une facture"

    Toujours récupérable localement: l'opération n'a eu aucun effet.
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"

    def __init__(
        self,
        detail: str = "Validation des données échouée",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Appel direct à AppException.__init__ pour ne pas passer par ValueError
        AppException.__init__(self, detail, error_code, extra)


# Alias
ValidationError = BusinessValidationError


class PreconditionError(AppException):
    """
    Opération tentée avant que son état requis soit atteint.

    Exemple: clôture de journée sans confirmation du caissier.
    """

    status_code: int = 428
    error_code: str = "PRECONDITION_REQUIRED"

    def __init__(
        self,
        detail: str = "Condition préalable non remplie",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class ConflictError(AppException):
    """
    Conflit d'état.

    Utilisée quand l'opération vise un état terminal (journée clôturée,
    camion déjà déchargé, facture soldée) ou un instantané périmé.
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"

    def __init__(
        self,
        detail: str = "Conflit d'état",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class CollaboratorError(AppException):
    """
    Échec d'un collaborateur externe (base de données, rapport, authentification).

    L'opération est annulée en bloc et peut être retentée.
    """

    status_code: int = 503
    error_code: str = "COLLABORATOR_UNAVAILABLE"

    def __init__(
        self,
        detail: str = "Service indisponible, veuillez réessayer",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class AuthorizationError(AppException):
    """
    Accès non autorisé.

    Exemple: un caissier tente de valider une clôture (réservé aux gérants).
    """

    status_code: int = 403
    error_code: str = "FORBIDDEN"

    def __init__(
        self,
        detail: str = "Accès non autorisé",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)
