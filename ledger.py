"""Operaciones de cuenta: saldo y registro de operaciones en una sola transacción."""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, TypeVar

from exceptions import (
    AccountNotFound,
    ConflictingUpdate,
    CustomerNotFound,
    InsufficientFunds,
    OperationNotFound,
    ValidationError,
)
from iban_utils import clean_iban, generate_iban
from models import CuentaBancaria, Operacion, TipoCuenta, TipoOperacion

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

CENT = Decimal("0.01")
# Numeric(15, 2)
MAX_IMPORTE = Decimal("9999999999999.99")


def applied_balance(saldo: Decimal, tipo: TipoOperacion, cantidad: Decimal) -> Decimal:
    if tipo.signo < 0 and saldo < cantidad:
        raise InsufficientFunds()
    return saldo + tipo.signo * cantidad


def reversed_balance(saldo: Decimal, tipo: TipoOperacion, cantidad: Decimal) -> Decimal:
    return saldo - tipo.signo * cantidad


def parse_tipo_operacion(raw: Any) -> TipoOperacion:
    if isinstance(raw, TipoOperacion):
        return raw
    try:
        return TipoOperacion(str(raw))
    except ValueError as exc:
        raise ValidationError("El tipo de operación no es válido") from exc


def parse_tipo_cuenta(raw: Any) -> TipoCuenta:
    if isinstance(raw, TipoCuenta):
        return raw
    try:
        return TipoCuenta(str(raw))
    except ValueError as exc:
        raise ValidationError("El tipo de cuenta no es válido") from exc


def _parse_importe(raw: Any, etiqueta: str) -> Decimal:
    """Convierte ``raw`` en un importe exacto en céntimos que cabe en la columna."""
    try:
        importe = Decimal(str(raw))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{etiqueta} no es un importe válido") from exc
    if not importe.is_finite():
        raise ValidationError(f"{etiqueta} no es un importe válido")
    if abs(importe) > MAX_IMPORTE:
        raise ValidationError(f"{etiqueta} supera el importe máximo permitido")
    redondeado = importe.quantize(CENT)
    if redondeado != importe:
        raise ValidationError(f"{etiqueta} no puede tener más de dos decimales")
    return redondeado


def _parse_cantidad(raw: Any) -> Decimal:
    cantidad = _parse_importe(raw, "La cantidad")
    if cantidad <= 0:
        raise ValidationError("La cantidad debe ser mayor que 0")
    return cantidad


def _ensure_not_future(value: date, field: str) -> None:
    if value > date.today():
        raise ValidationError(f"La {field} no puede ser futura")


class Ledger:
    """Aplica y revierte el efecto de las operaciones sobre el saldo de las cuentas.

    Cada cambio de saldo se confirma junto con la escritura de la operación
    correspondiente; si algo falla, no queda ningún efecto parcial. Los
    conflictos de versión se reintentan releyendo el estado.
    """

    def __init__(
        self,
        store,
        *,
        max_retries: int = 3,
        generate_numero_cuenta: Optional[Callable[[], str]] = None,
    ) -> None:
        self.store = store
        self.max_retries = max(1, max_retries)
        self._generate_numero_cuenta = generate_numero_cuenta or (lambda: generate_iban("ES", 8, 12))

    # Operaciones --------------------------------------------------------
    def add_operation(
        self,
        numero_cuenta: str,
        tipo: Any,
        cantidad: Any,
        descripcion: str,
        *,
        fecha: Optional[date] = None,
        cuenta_transferencia: Optional[str] = None,
    ) -> Operacion:
        tipo = parse_tipo_operacion(tipo)
        cantidad = _parse_cantidad(cantidad)
        contraparte = clean_iban(cuenta_transferencia or "") if tipo.es_transferencia else None
        descripcion = (descripcion or "").strip()
        if not descripcion:
            raise ValidationError("La descripción no puede estar vacía")
        fecha = fecha or date.today()
        _ensure_not_future(fecha, "fecha de operación")

        def action() -> Operacion:
            cuenta = self._get_cuenta(numero_cuenta)
            if fecha < cuenta.fecha_creacion:
                raise ValidationError("La fecha de operación es anterior a la apertura de la cuenta")
            nuevo_saldo = applied_balance(Decimal(cuenta.saldo), tipo, cantidad)
            with self.store.unit_of_work() as session:
                cuenta.saldo = nuevo_saldo
                operacion = Operacion(
                    descripcion=descripcion,
                    tipo=tipo,
                    fecha=fecha,
                    cantidad=cantidad,
                    num_cuenta_transferencia=contraparte,
                    cuenta=cuenta,
                )
                session.add(operacion)
            LOGGER.info(
                "Operación %s registrada en %s por %s (saldo %s)",
                tipo.value,
                numero_cuenta,
                cantidad,
                nuevo_saldo,
            )
            return operacion

        return self._with_retry(action)

    def delete_operation(self, codigo: int) -> str:
        """Revierte la operación y la elimina; devuelve el número de cuenta afectado."""

        def action() -> str:
            operacion = self.store.get_operacion(codigo)
            if operacion is None:
                raise OperationNotFound(
                    f"No se puede eliminar, la operación con el ID {codigo} no fue encontrada."
                )
            cuenta = operacion.cuenta
            numero_cuenta = cuenta.numero_cuenta
            with self.store.unit_of_work() as session:
                cuenta.saldo = reversed_balance(Decimal(cuenta.saldo), operacion.tipo, Decimal(operacion.cantidad))
                cuenta.operaciones.remove(operacion)
                session.delete(operacion)
            LOGGER.info("Operación %s eliminada de %s", codigo, numero_cuenta)
            return numero_cuenta

        return self._with_retry(action)

    # Cuentas ------------------------------------------------------------
    def open_account(
        self,
        tipo_cuenta: Any,
        cliente_nif: str,
        *,
        fecha_creacion: Optional[date] = None,
        saldo_inicial: Any = Decimal("0"),
    ) -> CuentaBancaria:
        tipo_cuenta = parse_tipo_cuenta(tipo_cuenta)
        fecha_creacion = fecha_creacion or date.today()
        _ensure_not_future(fecha_creacion, "fecha de creación")
        saldo_inicial = _parse_importe(saldo_inicial or "0", "El saldo inicial")
        if saldo_inicial < 0:
            raise ValidationError("El saldo inicial no puede ser negativo")

        cliente = self.store.get_cliente_by_nif(cliente_nif or "")
        if cliente is None:
            raise CustomerNotFound()

        numero_cuenta = self._new_numero_cuenta()
        with self.store.unit_of_work() as session:
            cuenta = CuentaBancaria(
                numero_cuenta=numero_cuenta,
                tipo_cuenta=tipo_cuenta,
                fecha_creacion=fecha_creacion,
                saldo=Decimal("0.00"),
            )
            cuenta.clientes.append(cliente)
            session.add(cuenta)
            if saldo_inicial > 0:
                cuenta.saldo = saldo_inicial
                session.add(
                    Operacion(
                        descripcion="Saldo inicial",
                        tipo=TipoOperacion.INGRESAR_DINERO,
                        fecha=fecha_creacion,
                        cantidad=saldo_inicial,
                        cuenta=cuenta,
                    )
                )
        LOGGER.info("Cuenta %s abierta para el cliente %s", numero_cuenta, cliente.id)
        return cuenta

    def update_account(
        self,
        numero_cuenta: str,
        *,
        tipo_cuenta: Any,
        fecha_creacion: date,
        version: Optional[int] = None,
    ) -> CuentaBancaria:
        tipo_cuenta = parse_tipo_cuenta(tipo_cuenta)
        _ensure_not_future(fecha_creacion, "fecha de creación")
        cuenta = self._get_cuenta(numero_cuenta)
        if version is not None and version != cuenta.version:
            raise ConflictingUpdate()
        if any(op.fecha < fecha_creacion for op in cuenta.operaciones):
            raise ValidationError("La cuenta tiene operaciones anteriores a esa fecha de creación")
        with self.store.unit_of_work():
            cuenta.tipo_cuenta = tipo_cuenta
            cuenta.fecha_creacion = fecha_creacion
        return cuenta

    def delete_account(self, numero_cuenta: str) -> None:
        cuenta = self._get_cuenta(numero_cuenta)
        with self.store.unit_of_work() as session:
            for operacion in list(cuenta.operaciones):
                cuenta.operaciones.remove(operacion)
                session.delete(operacion)
            session.flush()
            cuenta.clientes.clear()
            session.flush()
            session.delete(cuenta)
        LOGGER.info("Cuenta %s eliminada", numero_cuenta)

    def add_cliente(self, numero_cuenta: str, cliente_nif: str) -> CuentaBancaria:
        cuenta = self._get_cuenta(numero_cuenta)
        cliente = self.store.get_cliente_by_nif(cliente_nif or "")
        if cliente is None:
            raise CustomerNotFound()
        if cliente in cuenta.clientes:
            raise ValidationError("El cliente ya está asociado a la cuenta")
        with self.store.unit_of_work():
            cuenta.clientes.append(cliente)
        return cuenta

    def remove_cliente(self, numero_cuenta: str, cliente_nif: str) -> CuentaBancaria:
        cuenta = self._get_cuenta(numero_cuenta)
        cliente = self.store.get_cliente_by_nif(cliente_nif or "")
        if cliente is None:
            raise CustomerNotFound()
        if cliente not in cuenta.clientes:
            raise ValidationError("El cliente no está asociado a la cuenta")
        with self.store.unit_of_work():
            cuenta.clientes.remove(cliente)
        return cuenta

    # Auxiliares --------------------------------------------------------
    def _get_cuenta(self, numero_cuenta: str) -> CuentaBancaria:
        cuenta = self.store.get_cuenta(numero_cuenta) if numero_cuenta else None
        if cuenta is None:
            raise AccountNotFound()
        return cuenta

    def _new_numero_cuenta(self) -> str:
        for _ in range(50):
            candidate = self._generate_numero_cuenta()
            if not self.store.numero_cuenta_exists(candidate):
                return candidate
        raise RuntimeError("No se encontró un número de cuenta libre")

    def _with_retry(self, action: Callable[[], T]) -> T:
        for attempt in range(1, self.max_retries + 1):
            try:
                return action()
            except ConflictingUpdate:
                if attempt >= self.max_retries:
                    raise
                LOGGER.warning("Conflicto de versión, reintento %s/%s", attempt, self.max_retries)
                self.store.refresh()
        raise ConflictingUpdate()  # pragma: no cover - loop always returns or raises
