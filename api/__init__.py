"""Registro de blueprints de Gestor Banco."""

from . import auth, clientes, cuentas, operaciones


def register_apis(app, ctx) -> None:
    """Registra todos los blueprints en la aplicación Flask."""
    auth.register(app, ctx)
    clientes.register(app, ctx)
    cuentas.register(app, ctx)
    operaciones.register(app, ctx)
