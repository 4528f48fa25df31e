# kibbledrop/services/pet_service.py
from sqlalchemy.orm import Session

from kibbledrop.data.models.pet import PetProfileModel
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.errors import NotFoundError
from kibbledrop.domain.schemas import PetIn
from kibbledrop.repos.pet_repo import PetRepo
from kibbledrop.repos.subscription_repo import SubscriptionRepo
from kibbledrop.services.upload_service import check_upload, to_data_uri, IMAGE_TYPES, DOCUMENT_TYPES
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

ATTACHMENT_KINDS = {
    "image": IMAGE_TYPES,
    "vaccination_card": DOCUMENT_TYPES,
}


class PetService:
    def __init__(self, db: Session):
        self.repo = PetRepo(db)
        self.subscriptions = SubscriptionRepo(db)

    def list_pets(self, user: UserModel) -> list[PetProfileModel]:
        return self.repo.list_for_user(user.id)

    def get_pet(self, user: UserModel, pet_id: int) -> PetProfileModel:
        pet = self.repo.get_pet(pet_id)
        if not pet or pet.user_id != user.id:
            raise NotFoundError("Pet profile not found")
        return pet

    def create_pet(self, user: UserModel, payload: PetIn) -> PetProfileModel:
        if not payload.name or not payload.type:
            raise ValueError("Name and type are required")

        pet = self.repo.add(PetProfileModel(user_id=user.id, **payload.model_dump()))
        self.repo.commit()
        self.repo.refresh(pet)
        logger.info(f"Pet profile {pet.id} created for user {user.id}")
        return pet

    def update_pet(self, user: UserModel, pet_id: int, payload: PetIn) -> PetProfileModel:
        pet = self.get_pet(user, pet_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if field in ("name", "type") and not value:
                raise ValueError(f"{field} cannot be empty")
            setattr(pet, field, value)

        self.repo.commit()
        self.repo.refresh(pet)
        return pet

    def attach(self, user: UserModel, pet_id: int, kind: str, content_type: str | None, data: bytes) -> PetProfileModel:
        pet = self.get_pet(user, pet_id)
        allowed = ATTACHMENT_KINDS.get(kind)
        if allowed is None:
            raise ValueError(f"Invalid attachment kind, expected one of {', '.join(ATTACHMENT_KINDS)}")

        check_upload(content_type, data, allowed)
        setattr(pet, kind, to_data_uri(content_type.lower(), data))
        self.repo.commit()
        self.repo.refresh(pet)
        logger.info(f"Pet profile {pet.id}: stored {kind} ({len(data)} bytes)")
        return pet

    def delete_pet(self, user: UserModel, pet_id: int):
        pet = self.get_pet(user, pet_id)
        if self.subscriptions.count_for_pet(pet.id):
            raise ValueError("Pet profile is used by a subscription")

        self.repo.delete(pet)
        self.repo.commit()
        logger.info(f"Pet profile {pet_id} deleted")
