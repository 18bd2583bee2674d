"""Modelos relacionales: usuarios, clientes, cuentas bancarias y operaciones."""

import datetime
import enum
from decimal import Decimal
from typing import List, Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Column, Date, Enum as SQLAlchemyEnum, ForeignKey, Integer, Numeric, String, Table
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


db = SQLAlchemy(model_class=Base)


class Role(str, enum.Enum):
    ADMIN = "Admin"
    USER = "User"


class TipoCuenta(str, enum.Enum):
    AHORRO = "Ahorro"
    CORRIENTE = "Corriente"
    EMPRESARIAL = "Empresarial"


class TipoOperacion(str, enum.Enum):
    INGRESAR_DINERO = "IngresarDinero"
    RETIRAR_DINERO = "RetirarDinero"
    ENTRADA_TRANSFERENCIA = "EntradaTransferencia"
    RETIRADA_TRANSFERENCIA = "RetiradaTransferencia"

    @property
    def nombre(self) -> str:
        return _NOMBRES_OPERACION[self]

    @property
    def signo(self) -> int:
        """+1 si la operación suma al saldo, -1 si resta."""
        if self in (TipoOperacion.INGRESAR_DINERO, TipoOperacion.ENTRADA_TRANSFERENCIA):
            return 1
        return -1

    @property
    def es_transferencia(self) -> bool:
        return self in (TipoOperacion.ENTRADA_TRANSFERENCIA, TipoOperacion.RETIRADA_TRANSFERENCIA)


_NOMBRES_OPERACION = {
    TipoOperacion.INGRESAR_DINERO: "Ingreso de dinero",
    TipoOperacion.RETIRAR_DINERO: "Retirada de dinero",
    TipoOperacion.ENTRADA_TRANSFERENCIA: "Ingreso vía transferencia",
    TipoOperacion.RETIRADA_TRANSFERENCIA: "Retirada vía transferencia",
}


cliente_cuenta = Table(
    "cliente_cuenta",
    db.metadata,
    Column("cuenta_id", ForeignKey("dam_cuenta_bancaria.numero_cuenta"), primary_key=True),
    Column("cliente_id", ForeignKey("dam_cliente.id"), primary_key=True),
)


class User(db.Model):
    __tablename__ = "dam_user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    nombre: Mapped[str] = mapped_column(String(100))
    apellidos: Mapped[str] = mapped_column(String(100))
    password_hash: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(100), unique=True)
    role: Mapped[Role] = mapped_column(SQLAlchemyEnum(Role), default=Role.USER)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role.value})>"


class Cliente(db.Model):
    __tablename__ = "dam_cliente"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nif: Mapped[str] = mapped_column(String(9), unique=True, index=True)
    nombre: Mapped[str] = mapped_column(String(50))
    apellidos: Mapped[str] = mapped_column(String(100))
    anyo_nacimiento: Mapped[int] = mapped_column(Integer)
    direccion: Mapped[str] = mapped_column(String(150))
    email: Mapped[str] = mapped_column(String(100), unique=True)
    numero_contacto: Mapped[str] = mapped_column(String(15), unique=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    cuentas: Mapped[List["CuentaBancaria"]] = relationship(
        secondary=cliente_cuenta, back_populates="clientes"
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nif": self.nif,
            "nombre": self.nombre,
            "apellidos": self.apellidos,
            "anyoNacimiento": self.anyo_nacimiento,
            "direccion": self.direccion,
            "email": self.email,
            "numeroContacto": self.numero_contacto,
            "version": self.version,
        }


class CuentaBancaria(db.Model):
    __tablename__ = "dam_cuenta_bancaria"

    numero_cuenta: Mapped[str] = mapped_column(String(34), primary_key=True)
    tipo_cuenta: Mapped[TipoCuenta] = mapped_column(SQLAlchemyEnum(TipoCuenta))
    fecha_creacion: Mapped[datetime.date] = mapped_column(Date)
    saldo: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0.00"))
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    clientes: Mapped[List[Cliente]] = relationship(
        secondary=cliente_cuenta, back_populates="cuentas"
    )
    operaciones: Mapped[List["Operacion"]] = relationship(
        back_populates="cuenta", order_by="Operacion.fecha.desc()"
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dict(self) -> dict:
        return {
            "numeroCuenta": self.numero_cuenta,
            "tipoCuenta": self.tipo_cuenta.value,
            "fechaCreacion": self.fecha_creacion.isoformat(),
            "saldo": _format_amount(self.saldo),
            "version": self.version,
        }


class Operacion(db.Model):
    __tablename__ = "dam_operacion"

    codigo: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    descripcion: Mapped[str] = mapped_column(String(255))
    tipo: Mapped[TipoOperacion] = mapped_column(SQLAlchemyEnum(TipoOperacion))
    fecha: Mapped[datetime.date] = mapped_column(Date)
    cantidad: Mapped[Decimal] = mapped_column(Numeric(15, 2))
    num_cuenta_transferencia: Mapped[Optional[str]] = mapped_column(String(34), nullable=True)
    cuenta_id: Mapped[str] = mapped_column(ForeignKey("dam_cuenta_bancaria.numero_cuenta"))

    cuenta: Mapped[CuentaBancaria] = relationship(back_populates="operaciones")

    def to_dict(self) -> dict:
        return {
            "codigo": self.codigo,
            "descripcion": self.descripcion,
            "tipo": self.tipo.value,
            "tipoNombre": self.tipo.nombre,
            "fecha": self.fecha.isoformat(),
            "cantidad": _format_amount(self.cantidad),
            "numCuentaTransferencia": self.num_cuenta_transferencia,
        }


def _format_amount(value: Optional[Decimal]) -> str:
    return f"{Decimal(value or 0):.2f}"
