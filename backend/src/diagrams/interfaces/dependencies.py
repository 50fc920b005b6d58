from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from diagrams.infrastructure.diagram_repository import DbDiagramRepository
from sharing.infrastructure.share_repository import DbShareRepository
from shared.dependencies import get_db


def get_diagram_repo(db: AsyncSession = Depends(get_db)) -> DbDiagramRepository:
    return DbDiagramRepository(db)


def get_share_repo(db: AsyncSession = Depends(get_db)) -> DbShareRepository:
    return DbShareRepository(db)
