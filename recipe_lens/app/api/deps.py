from fastapi import Depends
from sqlalchemy.orm import Session

from recipe_lens.app.db.session import get_db
from recipe_lens.app.services.recipe_extractor import RecipeExtractor, get_default_extractor


def get_db_session(db: Session = Depends(get_db)) -> Session:
    return db


def get_recipe_extractor() -> RecipeExtractor:
    return get_default_extractor()
