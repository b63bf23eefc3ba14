"""Colombian departments, major cities and geographic regions"""

from typing import Optional

# 32 departments plus the capital district
COLOMBIAN_DEPARTMENTS = (
    "Amazonas",
    "Antioquia",
    "Arauca",
    "Atlántico",
    "Bogotá D.C.",
    "Bolívar",
    "Boyacá",
    "Caldas",
    "Caquetá",
    "Casanare",
    "Cauca",
    "Cesar",
    "Chocó",
    "Córdoba",
    "Cundinamarca",
    "Guainía",
    "Guaviare",
    "Huila",
    "La Guajira",
    "Magdalena",
    "Meta",
    "Nariño",
    "Norte de Santander",
    "Putumayo",
    "Quindío",
    "Risaralda",
    "San Andrés y Providencia",
    "Santander",
    "Sucre",
    "Tolima",
    "Valle del Cauca",
    "Vaupés",
    "Vichada",
)

_DEPARTMENT_SET = frozenset(COLOMBIAN_DEPARTMENTS)

MAJOR_CITIES_BY_DEPARTMENT = {
    "Amazonas": ["Leticia", "Puerto Nariño"],
    "Antioquia": ["Medellín", "Bello", "Itagüí", "Envigado", "Apartadó", "Turbo", "Rionegro"],
    "Arauca": ["Arauca", "Saravena", "Tame"],
    "Atlántico": ["Barranquilla", "Soledad", "Malambo", "Sabanagrande"],
    "Bogotá D.C.": ["Bogotá"],
    "Bolívar": ["Cartagena", "Magangué", "Turbaco", "Arjona"],
    "Boyacá": ["Tunja", "Duitama", "Sogamoso", "Chiquinquirá"],
    "Caldas": ["Manizales", "Chinchiná", "La Dorada", "Riosucio"],
    "Caquetá": ["Florencia", "San Vicente del Caguán", "Puerto Rico"],
    "Casanare": ["Yopal", "Aguazul", "Villanueva", "Monterrey"],
    "Cauca": ["Popayán", "Santander de Quilichao", "Puerto Tejada", "Guapi"],
    "Cesar": ["Valledupar", "Aguachica", "Bosconia", "Codazzi"],
    "Chocó": ["Quibdó", "Istmina", "Condoto", "Tadó"],
    "Córdoba": ["Montería", "Cereté", "Lorica", "Sahagún"],
    "Cundinamarca": ["Soacha", "Girardot", "Zipaquirá", "Chía", "Facatativá", "Fusagasugá"],
    "Guainía": ["Inírida"],
    "Guaviare": ["San José del Guaviare", "Calamar"],
    "Huila": ["Neiva", "Pitalito", "Garzón", "La Plata"],
    "La Guajira": ["Riohacha", "Maicao", "San Juan del Cesar", "Fonseca"],
    "Magdalena": ["Santa Marta", "Ciénaga", "Fundación", "El Banco"],
    "Meta": ["Villavicencio", "Acacías", "Granada", "Puerto López"],
    "Nariño": ["Pasto", "Tumaco", "Ipiales", "Túquerres"],
    "Norte de Santander": ["Cúcuta", "Ocaña", "Pamplona", "Villa del Rosario"],
    "Putumayo": ["Mocoa", "Puerto Asís", "Orito", "Sibundoy"],
    "Quindío": ["Armenia", "Calarcá", "La Tebaida", "Montenegro"],
    "Risaralda": ["Pereira", "Dosquebradas", "Santa Rosa de Cabal", "La Virginia"],
    "San Andrés y Providencia": ["San Andrés", "Providencia"],
    "Santander": ["Bucaramanga", "Floridablanca", "Girón", "Piedecuesta", "Barrancabermeja"],
    "Sucre": ["Sincelejo", "Corozal", "Sampués", "San Marcos"],
    "Tolima": ["Ibagué", "Espinal", "Girardot", "Melgar"],
    "Valle del Cauca": ["Cali", "Palmira", "Buenaventura", "Tuluá", "Cartago", "Buga"],
    "Vaupés": ["Mitú"],
    "Vichada": ["Puerto Carreño", "La Primavera"],
}

DEPARTMENTS_BY_REGION = {
    "ANDINA": (
        "Antioquia",
        "Boyacá",
        "Caldas",
        "Cundinamarca",
        "Huila",
        "Norte de Santander",
        "Quindío",
        "Risaralda",
        "Santander",
        "Tolima",
    ),
    "CARIBE": (
        "Atlántico",
        "Bolívar",
        "Cesar",
        "Córdoba",
        "La Guajira",
        "Magdalena",
        "San Andrés y Providencia",
        "Sucre",
    ),
    "PACIFICA": ("Cauca", "Chocó", "Nariño", "Valle del Cauca"),
    "ORINOQUIA": ("Arauca", "Casanare", "Meta", "Vichada"),
    "AMAZONIA": ("Amazonas", "Caquetá", "Guainía", "Guaviare", "Putumayo", "Vaupés"),
    "CAPITAL": ("Bogotá D.C.",),
}


def is_valid_colombian_department(department: Optional[str]) -> bool:
    """Exact, case-sensitive match against the official department names."""
    return isinstance(department, str) and department in _DEPARTMENT_SET


def get_cities_by_department(department: str) -> list[str]:
    return list(MAJOR_CITIES_BY_DEPARTMENT.get(department, []))


def find_department_by_city(city: str) -> Optional[str]:
    """
    Find the department a major city belongs to.

    Some cities (Girardot) appear under more than one department; the first
    department in alphabetical order wins.
    """
    needle = city.strip().lower()
    for department, cities in MAJOR_CITIES_BY_DEPARTMENT.items():
        if any(c.lower() == needle for c in cities):
            return department
    return None


def validate_colombian_address(department: str, city: str) -> bool:
    """True when the city is a known major city of the department."""
    if not is_valid_colombian_department(department):
        return False
    return city in MAJOR_CITIES_BY_DEPARTMENT[department]


def get_region_by_department(department: str) -> Optional[str]:
    for region, departments in DEPARTMENTS_BY_REGION.items():
        if department in departments:
            return region
    return None
