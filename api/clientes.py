"""Vistas y acciones sobre clientes."""

from typing import Any, Iterable

from flask import Blueprint, jsonify, redirect, request

from exceptions import CustomerNotFound, ValidationError
from models import Cliente
from schemas import CLIENTE_BUSQUEDA_SCHEMA, CLIENTE_SCHEMA

bp = Blueprint("clientes", __name__)


def register(app, ctx) -> None:
    """Registra las rutas de clientes."""
    store = ctx.store
    cliente_service = ctx.cliente_service
    url_cipher = ctx.url_cipher
    load_form = ctx.load_form
    load_args = ctx.load_args
    decrypt_param = ctx.decrypt_param

    def _listado(clientes: Iterable[Cliente]) -> Any:
        return jsonify(
            {
                "vista": "clienteView",
                "clientes": [
                    dict(cliente.to_dict(), nifCifrado=url_cipher.encrypt(cliente.nif)) for cliente in clientes
                ],
            }
        )

    @bp.get("/showClientesView")
    def show_clientes() -> Any:
        return _listado(store.list_clientes())

    @bp.get("/showClienteMod")
    def show_cliente_mod() -> Any:
        cliente = store.get_cliente_by_nif(decrypt_param("clienteDni"))
        if cliente is None:
            raise CustomerNotFound()
        return jsonify({"vista": "clienteModificar", "cliente": cliente.to_dict()})

    @bp.get("/actSearchCliente")
    def search_clientes() -> Any:
        filtros = load_args(CLIENTE_BUSQUEDA_SCHEMA)
        ordenar_por = filtros.pop("ordenar_por")
        return _listado(cliente_service.search(filtros, ordenar_por))

    @bp.post("/actAddCliente")
    def add_cliente() -> Any:
        cliente_service.create(load_form(CLIENTE_SCHEMA))
        return redirect("/showClientesView")

    @bp.post("/actModCliente")
    def mod_cliente() -> Any:
        data = load_form(CLIENTE_SCHEMA)
        if data["id"] is None:
            raise ValidationError("Falta el identificador del cliente")
        cliente_service.update(data["id"], data, data["version"])
        return redirect("/showClientesView")

    @bp.get("/actDropCliente")
    def drop_cliente() -> Any:
        cliente_service.delete(request.args.get("clienteId", ""))
        return redirect("/showClientesView")

    app.register_blueprint(bp)
