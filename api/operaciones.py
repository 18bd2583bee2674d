"""Listado, alta y baja de operaciones de una cuenta."""

from typing import Any
from urllib.parse import quote

from flask import Blueprint, jsonify, redirect, request

from exceptions import AccountNotFound, OperationNotFound, ValidationError
from models import Role, TipoOperacion
from schemas import OPERACION_SCHEMA

bp = Blueprint("operaciones", __name__)


def register(app, ctx) -> None:
    """Registra las rutas de operaciones."""
    store = ctx.store
    ledger = ctx.ledger
    url_cipher = ctx.url_cipher
    load_form = ctx.load_form
    decrypt = ctx.decrypt
    decrypt_param = ctx.decrypt_param
    require_role = ctx.require_role

    def _redirect_listado(numero_cuenta: str) -> Any:
        return redirect(f"/showOperacionesView?numCuenta={quote(url_cipher.encrypt(numero_cuenta))}")

    def _cuenta(numero_cuenta: str):
        cuenta = store.get_cuenta(numero_cuenta)
        if cuenta is None:
            raise AccountNotFound()
        return cuenta

    def _codigo() -> int:
        try:
            return int(request.args.get("codigo", ""))
        except ValueError as exc:
            raise ValidationError("Código de operación no válido") from exc

    @bp.get("/showOperacionesView")
    def show_operaciones() -> Any:
        numero_cuenta = decrypt_param("numCuenta")
        cuenta = _cuenta(numero_cuenta)
        return jsonify(
            {
                "vista": "operacionView",
                "cuenta": cuenta.to_dict(),
                "numCuentaCifrado": request.args.get("numCuenta"),
                "operaciones": [op.to_dict() for op in store.list_operaciones(numero_cuenta)],
            }
        )

    @bp.get("/newOperacionView")
    def new_operacion() -> Any:
        cuenta = _cuenta(decrypt_param("numCuenta"))
        return jsonify(
            {
                "vista": "operacionInsertar",
                "numCuenta": request.args.get("numCuenta"),
                "tiposOperacion": [{"valor": t.value, "nombre": t.nombre} for t in TipoOperacion],
                "fechaCreacionCuenta": cuenta.fecha_creacion.isoformat(),
            }
        )

    @bp.get("/operacionDetails")
    def operacion_details() -> Any:
        operacion = store.get_operacion(_codigo())
        if operacion is None:
            raise OperationNotFound()
        numero_cuenta = operacion.cuenta.numero_cuenta
        return jsonify(
            {
                "vista": "operacionDetails",
                "operacion": operacion.to_dict(),
                "numCuenta": numero_cuenta,
                "numCuentaCifrado": url_cipher.encrypt(numero_cuenta),
            }
        )

    @bp.post("/addOperacion")
    def add_operacion() -> Any:
        data = load_form(OPERACION_SCHEMA)
        numero_cuenta = decrypt(data["num_cuenta"])
        ledger.add_operation(
            numero_cuenta,
            data["tipo"],
            data["cantidad"],
            data["descripcion"],
            fecha=data["fecha"],
            cuenta_transferencia=data["num_cuenta_transferencia"],
        )
        return _redirect_listado(numero_cuenta)

    @bp.get("/actDropOperacion")
    def drop_operacion() -> Any:
        require_role(Role.ADMIN)
        numero_cuenta = ledger.delete_operation(_codigo())
        return _redirect_listado(numero_cuenta)

    app.register_blueprint(bp)
