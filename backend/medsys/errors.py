class MedSysError(Exception):
    """Erro base das operações do consultório."""
    status_code = 500

    def __init__(self, message, error=None):
        super().__init__(message)
        self.message = message
        self.error = error

    def to_response(self):
        body = {"message": self.message}
        if self.error is not None:
            body["error"] = str(self.error)
        return body, self.status_code


class ValidationError(MedSysError):
    status_code = 400


class NotFoundError(MedSysError):
    status_code = 404


class ConfirmationRequired(MedSysError):
    status_code = 409


class PersistenceError(MedSysError):
    status_code = 500


class DependentOperationError(MedSysError):
    """Falha de uma etapa prévia (ex.: cadastro automático do paciente)."""
    status_code = 500


class StoreError(Exception):
    """Levantado pelos repositórios quando a gravação ou leitura falha."""
