"""Create the Chambita schema and optionally load sample marketplace data.

``chambita-init-db`` only creates the tables; ``chambita-init-db --seed`` also
inserts a handful of users, reviews and job posts. Every sample account uses
``SAMPLE_PASSWORD``. Seeding is skipped when the sample employer already exists.
"""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass, field
from typing import Any

from chambita.models import JobPostCreateRequest, RegisterRequest, UserUpdateRequest
from chambita.repository import DEFAULT_DB_PATH, MarketplaceRepository
from chambita.security import hash_password
from chambita.updates import USERS

LOGGER = logging.getLogger("chambita.seed")

SAMPLE_PASSWORD = "123456"
SAMPLE_EMPLOYER_EMAIL = "rrhh@example.com"

SAMPLE_USERS: tuple[dict[str, Any], ...] = (
    {
        "account": {
            "name": "Ana Pérez",
            "email": "ana@example.com",
            "role": "seeker",
            "city": "La Paz",
            "phone_intl": "59171234567",
        },
        "profile": {
            "career": "Ingeniería de Sistemas",
            "specialty": "Frontend React",
            "summary": "Desarrolladora frontend con más de cinco años de experiencia.",
            "languages": ["Español (nativo)", "Inglés (avanzado)"],
            "skills": ["React", "TypeScript", "Flutter", "Git"],
            "experiences": ["Tech Solutions SRL · 2021-2024 · Senior Frontend Developer"],
            "service_categories": ["Desarrollo web"],
        },
    },
    {
        "account": {
            "name": "Luis García",
            "email": "luis@example.com",
            "role": "seeker",
            "city": "Santa Cruz de la Sierra",
            "phone_intl": "59176543210",
        },
        "profile": {
            "career": "Diseño Gráfico",
            "specialty": "UI/UX",
            "skills": ["Figma", "Illustrator", "Branding"],
            "certificates": ["Google UX Design Professional Certificate"],
            "service_categories": ["Diseño gráfico", "Diseño UI/UX"],
        },
    },
    {
        "account": {
            "name": "María Rodríguez",
            "email": "maria@example.com",
            "role": "seeker",
            "city": "Cochabamba",
        },
        "profile": {
            "career": "Ingeniería Informática",
            "specialty": "Backend Python",
            "skills": ["Python", "FastAPI", "PostgreSQL", "Docker"],
        },
    },
    {
        "account": {
            "name": "Roberto Plomero",
            "email": "roberto.plomero@example.com",
            "role": "serviceSeeker",
            "city": "La Paz",
            "phone_intl": "59171111111",
        },
        "profile": {
            "summary": "Plomero con 10 años de experiencia en reparaciones e instalaciones.",
            "service_categories": ["Plomería"],
            "skills": ["Instalación de cañerías", "Reparación de fugas"],
            "previous_works": ["Reparación de tubería en Edificio Los Pinos"],
        },
    },
    {
        "account": {
            "name": "Recursos Humanos SRL",
            "email": SAMPLE_EMPLOYER_EMAIL,
            "role": "employer",
            "city": "Cochabamba",
        },
        "profile": {"company_name": "RRHH SRL", "tax_id": "123456789"},
    },
)

# (reviewed email, author email, comment, rating)
SAMPLE_REVIEWS: tuple[tuple[str, str, str, float], ...] = (
    ("roberto.plomero@example.com", "ana@example.com", "Excelente trabajo, muy rápido.", 5),
    ("roberto.plomero@example.com", "luis@example.com", "Buen servicio, llegó tarde.", 4),
)

SAMPLE_JOB_POSTS: tuple[dict[str, Any], ...] = (
    {
        "title": "Frontend Flutter Jr",
        "description": "Buscamos desarrollador/a Flutter Jr para app móvil.",
        "city": "La Paz",
        "type": "fullTime",
        "modality": "hybrid",
        "requirements": ["Flutter/Dart básico", "Git básico"],
        "obligations": ["Cumplir sprints", "Revisiones de código"],
    },
    {
        "title": "Diseñador/a Gráfico",
        "description": "Creación de piezas para redes sociales y branding.",
        "city": "Santa Cruz de la Sierra",
        "type": "partTime",
        "modality": "remote",
        "requirements": ["Portafolio", "Figma/Adobe"],
        "obligations": ["Entregas semanales"],
    },
)


@dataclass
class SeedResult:
    user_ids: dict[str, str] = field(default_factory=dict)
    job_post_ids: list[str] = field(default_factory=list)


def seed_database(repository: MarketplaceRepository) -> SeedResult:
    result = SeedResult()
    if repository.email_exists(SAMPLE_EMPLOYER_EMAIL):
        LOGGER.info("sample data already present, skipping seed")
        return result

    password_hash = hash_password(SAMPLE_PASSWORD)
    for sample in SAMPLE_USERS:
        account = RegisterRequest(password=SAMPLE_PASSWORD, **sample["account"])
        user = repository.create_user(account, password_hash)
        repository.update_row(USERS, user.id, UserUpdateRequest(**sample["profile"]).changes())
        result.user_ids[user.email] = user.id

    for reviewed, author, comment, rating in SAMPLE_REVIEWS:
        repository.add_review(
            result.user_ids[reviewed],
            author_id=result.user_ids[author],
            comment=comment,
            rating=rating,
        )

    employer_id = result.user_ids[SAMPLE_EMPLOYER_EMAIL]
    for post in SAMPLE_JOB_POSTS:
        post_id = repository.create_job_post(JobPostCreateRequest(**post), employer_id)
        result.job_post_ids.append(post_id)

    LOGGER.info(
        "seeded %d users and %d job posts",
        len(result.user_ids),
        len(result.job_post_ids),
    )
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chambita-init-db",
        description="Create the Chambita database schema.",
    )
    parser.add_argument(
        "--database",
        default=os.getenv("CHAMBITA_DB_PATH", DEFAULT_DB_PATH),
        help="sqlite file to initialize (default: $CHAMBITA_DB_PATH or a temp-dir file)",
    )
    parser.add_argument(
        "--seed",
        action="store_true",
        help="insert sample users, reviews and job posts after creating the schema",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    args = build_parser().parse_args(argv)

    repository = MarketplaceRepository(args.database)
    repository.connect()
    try:
        LOGGER.info("schema ready at %s", args.database)
        if args.seed:
            seed_database(repository)
    finally:
        repository.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
