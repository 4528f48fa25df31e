# kibbledrop/api/routers/pets.py
from typing import List
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from kibbledrop.api.deps import get_current_user
from kibbledrop.data.database import get_db
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.schemas import PetIn, PetOut
from kibbledrop.services.pet_service import PetService
from kibbledrop.utils.settings import MAX_UPLOAD_BYTES

router = APIRouter(prefix="/api/pets", tags=["pets"])


@router.get("", response_model=List[PetOut])
def list_pets(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return PetService(db).list_pets(user)


@router.post("", response_model=PetOut, status_code=201)
def create_pet(payload: PetIn, user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return PetService(db).create_pet(user, payload)


@router.get("/{pet_id}", response_model=PetOut)
def get_pet(pet_id: int, user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return PetService(db).get_pet(user, pet_id)


@router.put("/{pet_id}", response_model=PetOut)
def update_pet(
    pet_id: int,
    payload: PetIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return PetService(db).update_pet(user, pet_id, payload)


@router.post("/{pet_id}/attachments", response_model=PetOut)
def upload_attachment(
    pet_id: int,
    kind: str = Form(...),
    file: UploadFile = File(...),
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # one byte over the limit is enough to reject it
    data = file.file.read(MAX_UPLOAD_BYTES + 1)
    return PetService(db).attach(user, pet_id, kind, file.content_type, data)


@router.delete("/{pet_id}")
def delete_pet(pet_id: int, user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    PetService(db).delete_pet(user, pet_id)
    return {"message": "Pet profile deleted"}
