"""Taxonomía de errores del backend de Gestor Banco."""


class GestorBancoError(Exception):
    """Base de todos los errores de dominio; lleva el estado HTTP asociado."""

    status_code = 400
    default_message = "Solicitud no válida"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class AuthenticationFailed(GestorBancoError):
    status_code = 401
    default_message = "Credenciales inválidas"


class TooManyAttempts(GestorBancoError):
    status_code = 429
    default_message = "Demasiados intentos fallidos"


class TokenInvalid(GestorBancoError):
    status_code = 401
    default_message = "El token JWT no es válido"


class TokenExpired(GestorBancoError):
    status_code = 401
    default_message = "El token JWT ha expirado"


class Unauthorized(GestorBancoError):
    status_code = 403
    default_message = "No autorizado"


class InvalidPassword(GestorBancoError):
    default_message = (
        "La contraseña debe tener al menos 8 caracteres, una mayúscula, "
        "un número y un carácter especial."
    )


class UserAlreadyExists(GestorBancoError):
    status_code = 409
    default_message = "El nombre de usuario ya está registrado"


class CustomerAlreadyExists(GestorBancoError):
    status_code = 409
    default_message = "El cliente ya está registrado"


class AccountNotFound(GestorBancoError):
    status_code = 404
    default_message = "Cuenta bancaria no encontrada"


class OperationNotFound(GestorBancoError):
    status_code = 404
    default_message = "Operación no encontrada"


class CustomerNotFound(GestorBancoError):
    status_code = 404
    default_message = "Cliente no encontrado"


class InsufficientFunds(GestorBancoError):
    default_message = "Saldo insuficiente para realizar la operación."


class InvalidIban(GestorBancoError):
    default_message = "El IBAN introducido no es válido."


class ConflictingUpdate(GestorBancoError):
    """Conflicto de bloqueo optimista: otra petición modificó el registro."""

    status_code = 409
    default_message = "Conflicto de edición: otra persona ha modificado este registro."


class StorageError(GestorBancoError):
    status_code = 503
    default_message = "Error al acceder a la base de datos."


class ValidationError(GestorBancoError):
    default_message = "Parámetros erróneos"
