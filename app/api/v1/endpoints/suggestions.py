from fastapi import APIRouter, HTTPException

from app.schemas.suggestion import SuggestionRead
from app.services.suggestions import (
    all_suggestions,
    categories,
    random_suggestion,
    suggestions_in_category,
)

router = APIRouter(prefix="/suggestions", tags=["suggestions"])


@router.get("", response_model=list[SuggestionRead])
async def list_suggestions():
    return all_suggestions()


@router.get("/categories", response_model=list[str])
async def list_categories():
    return categories()


@router.get("/category/{category}", response_model=list[SuggestionRead])
async def suggestions_by_category(category: str):
    matches = suggestions_in_category(category)
    if not matches:
        raise HTTPException(status_code=404, detail="Unknown suggestion category")
    return matches


@router.get("/random", response_model=SuggestionRead)
async def get_random_suggestion():
    return random_suggestion()
