from app.shared.colombia import (
    COLOMBIAN_DEPARTMENTS,
    find_department_by_city,
    get_cities_by_department,
    get_region_by_department,
    is_valid_colombian_department,
    validate_colombian_address,
)


def test_thirty_three_departments():
    assert len(COLOMBIAN_DEPARTMENTS) == 33
    assert len(set(COLOMBIAN_DEPARTMENTS)) == 33
    assert "Bogotá D.C." in COLOMBIAN_DEPARTMENTS


def test_every_department_is_valid():
    assert all(is_valid_colombian_department(d) for d in COLOMBIAN_DEPARTMENTS)


def test_department_match_is_case_sensitive():
    assert is_valid_colombian_department("Antioquia")
    assert not is_valid_colombian_department("antioquia")
    assert not is_valid_colombian_department("ANTIOQUIA")
    assert not is_valid_colombian_department("Bogota")
    assert not is_valid_colombian_department("X")
    assert not is_valid_colombian_department(None)


def test_cities_by_department():
    assert "Medellín" in get_cities_by_department("Antioquia")
    assert get_cities_by_department("Narnia") == []


def test_find_department_by_city_ignores_case():
    assert find_department_by_city("medellín") == "Antioquia"
    assert find_department_by_city("  Barranquilla ") == "Atlántico"
    assert find_department_by_city("Springfield") is None


def test_validate_address():
    assert validate_colombian_address("Antioquia", "Medellín") is True
    assert validate_colombian_address("Antioquia", "Barranquilla") is False
    assert validate_colombian_address("Narnia", "Medellín") is False


def test_region_lookup():
    assert get_region_by_department("Bogotá D.C.") == "CAPITAL"
    assert get_region_by_department("Amazonas") == "AMAZONIA"
    assert get_region_by_department("Narnia") is None
