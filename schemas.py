"""Esquemas marshmallow para los formularios de la aplicación."""

import re
from datetime import date
from decimal import Decimal

from marshmallow import EXCLUDE, Schema, ValidationError, fields, pre_load, validate

from models import TipoCuenta, TipoOperacion

NIF_RE = re.compile(r"^\d{8}[A-Za-z]$")
TELEFONO_RE = re.compile(r"^[0-9]{9,15}$")

EDAD_MINIMA = 18
EDAD_MAXIMA = 120


def _not_future(value: date) -> None:
    if value > date.today():
        raise ValidationError("La fecha no puede ser futura")


def _edad_valida(anyo: int) -> None:
    edad = date.today().year - anyo
    if edad < EDAD_MINIMA:
        raise ValidationError("El cliente debe ser mayor de edad")
    if edad > EDAD_MAXIMA:
        raise ValidationError("Año de nacimiento no válido")


class _FormSchema(Schema):
    """Base de los formularios: ignora campos desconocidos y trata "" como ausente."""

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def _drop_blank(self, data, **kwargs):
        return {key: value for key, value in data.items() if not (isinstance(value, str) and not value.strip())}


class LoginSchema(_FormSchema):
    username = fields.String(load_default="")
    password = fields.String(load_default="")


class RegisterSchema(_FormSchema):
    secret = fields.String(load_default="")
    username = fields.String(required=True, validate=validate.Length(min=4, max=50))
    password = fields.String(load_default="")
    nombre = fields.String(required=True, validate=validate.Length(min=1, max=100))
    apellidos = fields.String(required=True, validate=validate.Length(min=1, max=100))
    email = fields.Email(required=True, validate=validate.Length(max=100))
    role = fields.String(load_default="")


class ClienteSchema(_FormSchema):
    id = fields.Integer(load_default=None)
    version = fields.Integer(load_default=None)
    nif = fields.String(required=True, validate=validate.Regexp(NIF_RE, error="El NIF debe tener 8 dígitos y una letra"))
    nombre = fields.String(required=True, validate=validate.Length(min=1, max=50))
    apellidos = fields.String(required=True, validate=validate.Length(min=1, max=100))
    anyo_nacimiento = fields.Integer(required=True, data_key="anyoNacimiento", validate=_edad_valida)
    direccion = fields.String(required=True, validate=validate.Length(min=1, max=150))
    email = fields.Email(required=True, validate=validate.Length(max=100))
    numero_contacto = fields.String(
        required=True,
        data_key="numeroContacto",
        validate=validate.Regexp(TELEFONO_RE, error="El teléfono debe tener entre 9 y 15 dígitos"),
    )


class ClienteBusquedaSchema(_FormSchema):
    nombre = fields.String(load_default=None)
    apellido = fields.String(load_default=None)
    email = fields.String(load_default=None)
    numero_contacto = fields.String(load_default=None, data_key="numeroContacto")
    nif = fields.String(load_default=None, data_key="dni")
    ordenar_por = fields.String(
        load_default=None,
        data_key="ordenarPor",
        validate=validate.OneOf(["fechaAscendente", "fechaDescendente", "apellidoAscendente", "apellidoDescendente"]),
    )


class CuentaAltaSchema(_FormSchema):
    tipo_cuenta = fields.String(
        required=True, data_key="tipoCuenta", validate=validate.OneOf([t.value for t in TipoCuenta])
    )
    fecha_creacion = fields.Date(load_default=None, data_key="fechaCreacion", validate=_not_future)
    saldo = fields.Decimal(load_default=Decimal("0"), validate=validate.Range(min=Decimal("0")))
    cliente_dni = fields.String(required=True, data_key="clienteDni")


class CuentaModSchema(_FormSchema):
    numero_cuenta = fields.String(required=True, data_key="numeroCuenta")
    tipo_cuenta = fields.String(
        required=True, data_key="tipoCuenta", validate=validate.OneOf([t.value for t in TipoCuenta])
    )
    fecha_creacion = fields.Date(required=True, data_key="fechaCreacion", validate=_not_future)
    version = fields.Integer(load_default=None)


class CuentaBusquedaSchema(_FormSchema):
    numero_cuenta = fields.String(load_default=None, data_key="numeroCuenta")
    tipo_cuenta = fields.String(
        load_default=None, data_key="tipoCuenta", validate=validate.OneOf([t.value for t in TipoCuenta])
    )
    ordenar_por = fields.String(
        load_default=None, data_key="ordenarPor", validate=validate.OneOf(["fechaAscendente", "fechaDescendente"])
    )


class ClienteCuentaSchema(_FormSchema):
    numero_cuenta = fields.String(required=True, data_key="numeroCuenta")
    cliente_dni = fields.String(required=True, data_key="clienteDni")


class OperacionSchema(_FormSchema):
    descripcion = fields.String(required=True, validate=validate.Length(min=1, max=255))
    tipo = fields.String(required=True, validate=validate.OneOf([t.value for t in TipoOperacion]))
    fecha = fields.Date(load_default=None, validate=_not_future)
    cantidad = fields.Decimal(
        required=True, validate=validate.Range(min=Decimal("0"), min_inclusive=False, error="La cantidad debe ser mayor que 0")
    )
    num_cuenta_transferencia = fields.String(load_default=None, data_key="numCuentaTransferencia")
    num_cuenta = fields.String(required=True, data_key="numCuenta")


LOGIN_SCHEMA = LoginSchema()
REGISTER_SCHEMA = RegisterSchema()
CLIENTE_SCHEMA = ClienteSchema()
CLIENTE_BUSQUEDA_SCHEMA = ClienteBusquedaSchema()
CUENTA_ALTA_SCHEMA = CuentaAltaSchema()
CUENTA_MOD_SCHEMA = CuentaModSchema()
CUENTA_BUSQUEDA_SCHEMA = CuentaBusquedaSchema()
CLIENTE_CUENTA_SCHEMA = ClienteCuentaSchema()
OPERACION_SCHEMA = OperacionSchema()
