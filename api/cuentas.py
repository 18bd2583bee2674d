"""Vistas y acciones sobre cuentas bancarias y sus titulares."""

from typing import Any, Iterable, Optional
from urllib.parse import quote

from flask import Blueprint, jsonify, redirect, request

from exceptions import AccountNotFound, CustomerNotFound
from models import CuentaBancaria, TipoCuenta
from schemas import CLIENTE_CUENTA_SCHEMA, CUENTA_ALTA_SCHEMA, CUENTA_BUSQUEDA_SCHEMA, CUENTA_MOD_SCHEMA

bp = Blueprint("cuentas", __name__)

TIPOS_CUENTA = [tipo.value for tipo in TipoCuenta]


def register(app, ctx) -> None:
    """Registra las rutas de cuentas bancarias."""
    store = ctx.store
    ledger = ctx.ledger
    url_cipher = ctx.url_cipher
    load_form = ctx.load_form
    load_args = ctx.load_args
    decrypt_param = ctx.decrypt_param

    def _listado(cuentas: Iterable[CuentaBancaria], **extra: Any) -> Any:
        payload = {
            "vista": "cuentaView",
            "tiposCuenta": TIPOS_CUENTA,
            "cuentas": [
                dict(
                    cuenta.to_dict(),
                    ibanCifrado=url_cipher.encrypt(cuenta.numero_cuenta),
                    titulares=[cliente.nif for cliente in cuenta.clientes],
                )
                for cuenta in cuentas
            ],
        }
        payload.update(extra)
        return jsonify(payload)

    def _redirect_mod(numero_cuenta: str) -> Any:
        return redirect(f"/showCuentasMod?cuentaId={quote(url_cipher.encrypt(numero_cuenta))}")

    @bp.get("/showCuentasView")
    def show_cuentas() -> Any:
        return _listado(store.list_cuentas())

    @bp.get("/newCuentasView")
    def new_cuenta() -> Any:
        return jsonify(
            {
                "vista": "cuentaInsertar",
                "tiposCuenta": TIPOS_CUENTA,
                "clientes": [cliente.to_dict() for cliente in store.list_clientes()],
            }
        )

    @bp.get("/showCuentasMod")
    def show_cuenta_mod() -> Any:
        numero_cuenta = decrypt_param("cuentaId")
        cuenta = store.get_cuenta(numero_cuenta)
        if cuenta is None:
            raise AccountNotFound()
        return jsonify(
            {
                "vista": "cuentaModificar",
                "cuenta": cuenta.to_dict(),
                "tiposCuenta": TIPOS_CUENTA,
                "titulares": [c.to_dict() for c in store.clientes_of_cuenta(numero_cuenta)],
                "clientesNoAsignados": [c.to_dict() for c in store.clientes_not_in_cuenta(numero_cuenta)],
            }
        )

    @bp.get("/showClienteCuentas")
    def show_cliente_cuentas() -> Any:
        cliente = store.get_cliente_by_nif(decrypt_param("clienteNif"))
        if cliente is None:
            raise CustomerNotFound()
        cuentas = sorted(cliente.cuentas, key=lambda c: c.numero_cuenta)
        return _listado(cuentas, cliente=cliente.to_dict())

    @bp.get("/actSearchCuenta")
    def search_cuentas() -> Any:
        filtros = load_args(CUENTA_BUSQUEDA_SCHEMA)
        tipo: Optional[TipoCuenta] = TipoCuenta(filtros["tipo_cuenta"]) if filtros["tipo_cuenta"] else None
        cuentas = store.search_cuentas(numero_cuenta=filtros["numero_cuenta"], tipo_cuenta=tipo)
        ordenar_por = filtros["ordenar_por"]
        if ordenar_por:
            cuentas.sort(key=lambda c: c.fecha_creacion, reverse=ordenar_por == "fechaDescendente")
        return _listado(cuentas)

    @bp.post("/actAddCuenta")
    def add_cuenta() -> Any:
        data = load_form(CUENTA_ALTA_SCHEMA)
        ledger.open_account(
            data["tipo_cuenta"],
            data["cliente_dni"],
            fecha_creacion=data["fecha_creacion"],
            saldo_inicial=data["saldo"],
        )
        return redirect("/showCuentasView")

    @bp.post("/actModCuenta")
    def mod_cuenta() -> Any:
        data = load_form(CUENTA_MOD_SCHEMA)
        ledger.update_account(
            data["numero_cuenta"],
            tipo_cuenta=data["tipo_cuenta"],
            fecha_creacion=data["fecha_creacion"],
            version=data["version"],
        )
        return redirect("/showCuentasView")

    @bp.get("/actDropCuenta")
    def drop_cuenta() -> Any:
        ledger.delete_account(request.args.get("numCuenta", ""))
        return redirect("/showCuentasView")

    @bp.post("/actAddClienteCuenta")
    def add_cliente_cuenta() -> Any:
        data = load_form(CLIENTE_CUENTA_SCHEMA)
        ledger.add_cliente(data["numero_cuenta"], data["cliente_dni"])
        return _redirect_mod(data["numero_cuenta"])

    @bp.get("/actDropClienteCuenta")
    def drop_cliente_cuenta() -> Any:
        numero_cuenta = request.args.get("cuentaId", "")
        ledger.remove_cliente(numero_cuenta, request.args.get("clienteId", ""))
        return _redirect_mod(numero_cuenta)

    app.register_blueprint(bp)
