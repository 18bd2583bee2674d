"""Alta, modificación, baja y búsqueda de clientes."""

import logging
import unicodedata
from typing import Any, Dict, List, Optional

from exceptions import ConflictingUpdate, CustomerAlreadyExists, CustomerNotFound
from models import Cliente

LOGGER = logging.getLogger(__name__)

ORDENES = ("fechaAscendente", "fechaDescendente", "apellidoAscendente", "apellidoDescendente")

_CAMPOS = ("nif", "nombre", "apellidos", "anyo_nacimiento", "direccion", "email", "numero_contacto")


def collation_key(text: Optional[str]) -> str:
    """Clave de orden sin acentos ni mayúsculas ("Álvarez" junto a "alvarez")."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def sort_clientes(clientes: List[Cliente], ordenar_por: Optional[str]) -> List[Cliente]:
    if not ordenar_por:
        return clientes
    reverse = not ordenar_por.endswith("Ascendente")
    if "fecha" in ordenar_por:
        return sorted(clientes, key=lambda c: c.anyo_nacimiento, reverse=reverse)
    if "apellido" in ordenar_por:
        return sorted(clientes, key=lambda c: collation_key(c.apellidos), reverse=reverse)
    return clientes


class ClienteService:
    def __init__(self, store) -> None:
        self.store = store

    def create(self, data: Dict[str, Any]) -> Cliente:
        values = _normalized(data)
        self._ensure_unique(values)
        cliente = Cliente(**values)
        with self.store.unit_of_work() as session:
            session.add(cliente)
        LOGGER.info("Cliente %s dado de alta", cliente.id)
        return cliente

    def update(self, cliente_id: int, data: Dict[str, Any], version: Optional[int] = None) -> Cliente:
        cliente = self.store.get_cliente(cliente_id)
        if cliente is None:
            raise CustomerNotFound()
        if version is not None and version != cliente.version:
            raise ConflictingUpdate()
        values = _normalized(data)
        self._ensure_unique(values, exclude_id=cliente.id)
        with self.store.unit_of_work():
            for field, value in values.items():
                setattr(cliente, field, value)
        return cliente

    def delete(self, nif: str) -> None:
        cliente = self.store.get_cliente_by_nif(nif or "")
        if cliente is None:
            raise CustomerNotFound()
        with self.store.unit_of_work() as session:
            cliente.cuentas.clear()
            session.flush()
            session.delete(cliente)
        LOGGER.info("Cliente %s eliminado", cliente.id)

    def search(self, filters: Dict[str, Optional[str]], ordenar_por: Optional[str] = None) -> List[Cliente]:
        clientes = self.store.search_clientes(**{k: v for k, v in filters.items() if v})
        return sort_clientes(clientes, ordenar_por)

    def _ensure_unique(self, values: Dict[str, Any], exclude_id: Optional[int] = None) -> None:
        if self.store.nif_exists(values["nif"], exclude_id=exclude_id):
            raise CustomerAlreadyExists("Ya existe un cliente con ese NIF")
        if self.store.email_exists(values["email"], exclude_id=exclude_id):
            raise CustomerAlreadyExists("Ya existe un cliente con ese email")
        if self.store.telefono_exists(values["numero_contacto"], exclude_id=exclude_id):
            raise CustomerAlreadyExists("Ya existe un cliente con ese teléfono")


def _normalized(data: Dict[str, Any]) -> Dict[str, Any]:
    values = {field: data[field] for field in _CAMPOS}
    values["nif"] = values["nif"].strip().upper()
    values["email"] = values["email"].strip().lower()
    for field in ("nombre", "apellidos", "direccion", "numero_contacto"):
        values[field] = values[field].strip()
    return values
