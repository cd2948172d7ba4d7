"""Reference data router."""
from fastapi import APIRouter, Depends
from typing import List

from app.models.reference import ReferenceEntry
from app.services.reference_service import ReferenceDataResolver
from app.utils.dependencies import get_reference_resolver


router = APIRouter(prefix="/api/v1/reference", tags=["Reference"])


@router.get("/interview-types", response_model=List[ReferenceEntry])
async def list_interview_types(resolver: ReferenceDataResolver = Depends(get_reference_resolver)):
    return await resolver.list_interview_types()


@router.get("/experience-levels", response_model=List[ReferenceEntry])
async def list_experience_levels(resolver: ReferenceDataResolver = Depends(get_reference_resolver)):
    return await resolver.list_experience_levels()


@router.get("/difficulty-levels", response_model=List[ReferenceEntry])
async def list_difficulty_levels(resolver: ReferenceDataResolver = Depends(get_reference_resolver)):
    return await resolver.list_difficulty_levels()
