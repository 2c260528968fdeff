"""
Erreurs du moteur de rapports.
status_code = code HTTP renvoyé par le handler de server.py.
"""


class ReportError(Exception):
    status_code = 500

    def __init__(self, message: str, details: str = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidRequest(ReportError):
    """Type de rapport inconnu, dates illisibles"""
    status_code = 400


class Forbidden(ReportError):
    status_code = 403


class DataAccessFailure(ReportError):
    """Base injoignable ou requête en erreur. Pas de retry interne."""
    status_code = 500
