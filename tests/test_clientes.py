from types import SimpleNamespace

import pytest

import server
from clientes import collation_key, sort_clientes
from exceptions import ConflictingUpdate, CustomerAlreadyExists, CustomerNotFound


def test_collation_key_ignores_accents_and_case():
    assert collation_key("Álvarez") == collation_key("alvarez")
    assert collation_key(None) == ""


def test_sort_clientes_by_birth_year_and_surname():
    clientes = [
        SimpleNamespace(apellidos="Zapata", anyo_nacimiento=1990),
        SimpleNamespace(apellidos="Ávila", anyo_nacimiento=1970),
        SimpleNamespace(apellidos="Benítez", anyo_nacimiento=1980),
    ]
    assert [c.anyo_nacimiento for c in sort_clientes(clientes, "fechaAscendente")] == [1970, 1980, 1990]
    assert [c.apellidos for c in sort_clientes(clientes, "apellidoDescendente")] == ["Zapata", "Benítez", "Ávila"]
    assert sort_clientes(clientes, None) is clientes


def test_create_normalizes_and_checks_phone(app_ctx, cliente_data):
    cliente = server.cliente_service.create(cliente_data(nif="12345678z", email="Lucia@Example.COM"))
    assert cliente.nif == "12345678Z"
    assert cliente.email == "lucia@example.com"
    with pytest.raises(CustomerAlreadyExists, match="teléfono"):
        server.cliente_service.create(cliente_data(nif="87654321X", email="otra@example.com"))


def test_update_checks_existence_and_version(app_ctx, cliente_data):
    cliente = server.cliente_service.create(cliente_data())
    with pytest.raises(CustomerNotFound):
        server.cliente_service.update(9999, cliente_data())
    with pytest.raises(ConflictingUpdate):
        server.cliente_service.update(cliente.id, cliente_data(), version=cliente.version + 1)
    updated = server.cliente_service.update(cliente.id, cliente_data(nombre="Lucía María"), version=cliente.version)
    assert updated.nombre == "Lucía María"


def test_delete_unknown_cliente(app_ctx):
    with pytest.raises(CustomerNotFound):
        server.cliente_service.delete("00000000T")
