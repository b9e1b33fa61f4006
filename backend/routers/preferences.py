"""
Preferences Router — /api/preferences

Endpoints:
    GET    /api/preferences/{user_id}   — Stored preferences or the role defaults
    PUT    /api/preferences/{user_id}   — Merge sections into the stored preferences
    DELETE /api/preferences/{user_id}   — Drop stored preferences (back to role defaults)
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from .. import crud
from ..schemas import PreferencesUpdate, PreferencesResponse

router = APIRouter(prefix="/api/preferences", tags=["Preferences"])


@router.get("/{user_id}", response_model=PreferencesResponse)
def get_preferences(user_id: int, db: Session = Depends(get_db)):
    preferences = crud.get_user_preferences(db, user_id)
    if preferences is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return preferences


@router.put("/{user_id}", response_model=PreferencesResponse)
def update_preferences(user_id: int, data: PreferencesUpdate, db: Session = Depends(get_db)):
    preferences = crud.update_user_preferences(db, user_id, data)
    if preferences is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return preferences


@router.delete("/{user_id}", response_model=PreferencesResponse)
def reset_preferences(user_id: int, db: Session = Depends(get_db)):
    preferences = crud.reset_user_preferences(db, user_id)
    if preferences is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return preferences
