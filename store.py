"""Capa de acceso a datos sobre SQLAlchemy."""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from exceptions import ConflictingUpdate, StorageError
from models import Cliente, CuentaBancaria, Operacion, TipoCuenta, User, cliente_cuenta

LOGGER = logging.getLogger(__name__)


class SqlStore:
    """Repositorio relacional de usuarios, clientes, cuentas y operaciones."""

    def __init__(self, db) -> None:
        self._db = db

    @property
    def session(self) -> Session:
        return self._db.session

    @contextmanager
    def unit_of_work(self) -> Iterator[Session]:
        """Agrupa varias escrituras: commit al final, rollback ante cualquier fallo."""
        session = self.session
        try:
            yield session
            session.commit()
        except StaleDataError as exc:
            session.rollback()
            LOGGER.info("Conflicto de versión detectado: %s", exc)
            raise ConflictingUpdate() from exc
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.error("Error de almacenamiento: %s", exc)
            raise StorageError() from exc
        except Exception:
            session.rollback()
            raise

    def refresh(self) -> None:
        self.session.expire_all()

    # Usuarios -----------------------------------------------------------
    def user_exists(self, username: str) -> bool:
        return self.get_user(username) is not None

    def get_user(self, username: str) -> Optional[User]:
        return self.session.scalar(select(User).where(User.username == username))

    def user_email_exists(self, email: str) -> bool:
        return self.session.scalar(select(User.id).where(User.email == email)) is not None

    def create_user(self, user: User) -> User:
        with self.unit_of_work() as session:
            session.add(user)
        return user

    # Clientes -----------------------------------------------------------
    def get_cliente(self, cliente_id: int) -> Optional[Cliente]:
        return self.session.get(Cliente, cliente_id)

    def get_cliente_by_nif(self, nif: str) -> Optional[Cliente]:
        return self.session.scalar(select(Cliente).where(Cliente.nif == nif.upper()))

    def list_clientes(self) -> List[Cliente]:
        return list(self.session.scalars(select(Cliente).order_by(Cliente.nif)))

    def search_clientes(
        self,
        *,
        nombre: Optional[str] = None,
        apellido: Optional[str] = None,
        email: Optional[str] = None,
        numero_contacto: Optional[str] = None,
        nif: Optional[str] = None,
    ) -> List[Cliente]:
        stmt = select(Cliente)
        if nombre:
            stmt = stmt.where(Cliente.nombre.ilike(f"%{nombre}%"))
        if apellido:
            stmt = stmt.where(Cliente.apellidos.ilike(f"%{apellido}%"))
        if email:
            stmt = stmt.where(Cliente.email.ilike(f"%{email}%"))
        if numero_contacto:
            stmt = stmt.where(Cliente.numero_contacto.like(f"%{numero_contacto}%"))
        if nif:
            stmt = stmt.where(Cliente.nif.like(f"%{nif.upper()}%"))
        return list(self.session.scalars(stmt.order_by(Cliente.id)))

    def nif_exists(self, nif: str, *, exclude_id: Optional[int] = None) -> bool:
        return self._cliente_field_taken(Cliente.nif, nif.upper(), exclude_id)

    def email_exists(self, email: str, *, exclude_id: Optional[int] = None) -> bool:
        return self._cliente_field_taken(Cliente.email, email.lower(), exclude_id)

    def telefono_exists(self, telefono: str, *, exclude_id: Optional[int] = None) -> bool:
        return self._cliente_field_taken(Cliente.numero_contacto, telefono, exclude_id)

    def _cliente_field_taken(self, column, value: str, exclude_id: Optional[int]) -> bool:
        stmt = select(Cliente.id).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(Cliente.id != exclude_id)
        return self.session.scalar(stmt) is not None

    def clientes_of_cuenta(self, numero_cuenta: str) -> List[Cliente]:
        stmt = (
            select(Cliente)
            .join(cliente_cuenta, cliente_cuenta.c.cliente_id == Cliente.id)
            .where(cliente_cuenta.c.cuenta_id == numero_cuenta)
            .order_by(Cliente.nif)
        )
        return list(self.session.scalars(stmt))

    def clientes_not_in_cuenta(self, numero_cuenta: str) -> List[Cliente]:
        assigned = select(cliente_cuenta.c.cliente_id).where(cliente_cuenta.c.cuenta_id == numero_cuenta)
        stmt = select(Cliente).where(Cliente.id.not_in(assigned)).order_by(Cliente.nif)
        return list(self.session.scalars(stmt))

    # Cuentas ------------------------------------------------------------
    def get_cuenta(self, numero_cuenta: str) -> Optional[CuentaBancaria]:
        return self.session.get(CuentaBancaria, numero_cuenta)

    def numero_cuenta_exists(self, numero_cuenta: str) -> bool:
        return self.get_cuenta(numero_cuenta) is not None

    def list_cuentas(self) -> List[CuentaBancaria]:
        return list(self.session.scalars(select(CuentaBancaria).order_by(CuentaBancaria.numero_cuenta)))

    def search_cuentas(
        self,
        *,
        numero_cuenta: Optional[str] = None,
        tipo_cuenta: Optional[TipoCuenta] = None,
    ) -> List[CuentaBancaria]:
        stmt = select(CuentaBancaria)
        if numero_cuenta:
            stmt = stmt.where(CuentaBancaria.numero_cuenta.like(f"%{numero_cuenta.upper()}%"))
        if tipo_cuenta is not None:
            stmt = stmt.where(CuentaBancaria.tipo_cuenta == tipo_cuenta)
        return list(self.session.scalars(stmt.order_by(CuentaBancaria.numero_cuenta)))

    # Operaciones --------------------------------------------------------
    def get_operacion(self, codigo: int) -> Optional[Operacion]:
        return self.session.get(Operacion, codigo)

    def list_operaciones(self, numero_cuenta: str) -> List[Operacion]:
        stmt = (
            select(Operacion)
            .where(Operacion.cuenta_id == numero_cuenta)
            .order_by(Operacion.fecha.desc(), Operacion.codigo.desc())
        )
        return list(self.session.scalars(stmt))
