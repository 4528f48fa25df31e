# kibbledrop/services/user_service.py
import re
from sqlalchemy.orm import Session

from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.errors import AuthenticationError, NotFoundError
from kibbledrop.domain.schemas import RegisterIn, ProfileUpdate, ChangePasswordIn, AdminUserUpdate
from kibbledrop.domain.statuses import SUB_ACTIVE
from kibbledrop.repos.user_repo import UserRepo
from kibbledrop.repos.order_repo import OrderRepo
from kibbledrop.repos.pet_repo import PetRepo
from kibbledrop.repos.cart_repo import CartRepo
from kibbledrop.repos.subscription_repo import SubscriptionRepo
from kibbledrop.services.auth_service import hash_password, verify_password, create_access_token
from kibbledrop.services.notification_service import NotificationService
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

ROLES = ("customer", "admin")
USER_STATUSES = ("active", "suspended")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepo(db)
        self.orders = OrderRepo(db)
        self.pets = PetRepo(db)
        self.subscriptions = SubscriptionRepo(db)
        self.notification_service = NotificationService()

    def get_user(self, user_id: int) -> UserModel:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    # auth

    def register(self, payload: RegisterIn) -> UserModel:
        email = payload.email.strip().lower()
        if not _EMAIL_RE.match(email):
            raise ValueError("Invalid email address")
        if self.repo.get_by_email(email):
            raise ValueError("User with this email already exists")

        user = self.repo.add(
            UserModel(
                email=email,
                name=payload.name.strip(),
                password_hash=hash_password(payload.password),
                role="customer",
                status="active",
            )
        )
        self.repo.commit()
        self.repo.refresh(user)
        logger.info(f"Registered user {user.id} ({email})")

        self.notification_service.send_welcome(user.email, user.name)
        return user

    def authenticate(self, email: str, password: str) -> tuple[UserModel, str]:
        user = self.repo.get_by_email(email.strip())
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        if user.status != "active":
            raise PermissionError("Account is suspended")

        logger.info(f"User {user.id} logged in")
        return user, create_access_token(user.id, user.email, user.role)

    # profile

    def update_profile(self, user: UserModel, payload: ProfileUpdate) -> UserModel:
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(user, field, value)
        self.repo.commit()
        self.repo.refresh(user)
        return user

    def change_password(self, user: UserModel, payload: ChangePasswordIn):
        current, new, confirm = payload.current_password, payload.new_password, payload.confirm_password
        if not current or not new or not confirm:
            raise ValueError("All fields are required")
        if new != confirm:
            raise ValueError("New passwords do not match")
        if len(new) < 8:
            raise ValueError("Password must be at least 8 characters long")
        if not (re.search(r"[a-z]", new) and re.search(r"[A-Z]", new) and re.search(r"\d", new)):
            raise ValueError("Password must contain uppercase, lowercase and a number")
        if not verify_password(current, user.password_hash):
            raise ValueError("Current password is incorrect")

        user.password_hash = hash_password(new)
        self.repo.commit()
        logger.info(f"User {user.id} changed password")

    def stats(self, user: UserModel) -> dict:
        return {
            "total_orders": self.orders.count_for_user(user.id),
            "active_subscriptions": self.subscriptions.count_by_status(SUB_ACTIVE, user_id=user.id),
            "pet_count": self.pets.count_for_user(user.id),
            "recent_orders": self.orders.list_for_user(user.id, limit=5),
        }

    # admin

    def admin_list(self) -> list[dict]:
        return [self._admin_view(u) for u in self.repo.list_users()]

    def admin_get(self, user_id: int) -> dict:
        return self._admin_view(self.get_user(user_id), with_orders=True)

    def admin_update(self, user_id: int, payload: AdminUserUpdate) -> dict:
        user = self.get_user(user_id)
        if payload.status is not None:
            if payload.status not in USER_STATUSES:
                raise ValueError(f"Invalid status, expected one of {', '.join(USER_STATUSES)}")
            user.status = payload.status
        if payload.role is not None:
            if payload.role not in ROLES:
                raise ValueError(f"Invalid role, expected one of {', '.join(ROLES)}")
            user.role = payload.role

        self.repo.commit()
        self.repo.refresh(user)
        logger.info(f"Admin updated user {user.id}: status={user.status} role={user.role}")
        return self._admin_view(user)

    def admin_delete(self, user_id: int, acting_admin_id: int):
        user = self.get_user(user_id)
        if user.id == acting_admin_id:
            raise ValueError("You cannot delete your own account")
        if self.subscriptions.count_by_status(SUB_ACTIVE, user_id=user.id):
            raise ValueError("Cannot delete user with active subscriptions. Cancel them first.")

        try:
            # orders may point at subscriptions, subscriptions at pets
            for order in self.orders.list_for_user(user.id):
                self.db.delete(order)
            self.db.flush()
            for pet in self.pets.list_for_user(user.id):
                for sub in self.subscriptions.list_for_pet(pet.id):
                    self.db.delete(sub)
                self.db.flush()
                self.db.delete(pet)
            for sub in self.subscriptions.list_for_user(user.id):
                self.db.delete(sub)
            cart = CartRepo(self.db).get_cart_by_user(user.id)
            if cart:
                self.db.delete(cart)
            self.db.flush()
            self.db.delete(user)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Admin {acting_admin_id} deleted user {user_id}")

    def _admin_view(self, user: UserModel, with_orders: bool = False) -> dict:
        view = {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "role": user.role,
            "status": user.status,
            "phone": user.phone,
            "address": user.address,
            "created_at": user.created_at,
            "order_count": self.orders.count_for_user(user.id),
            "subscription_count": len(user.subscriptions),
            "pet_count": self.pets.count_for_user(user.id),
            "orders": [],
        }
        if with_orders:
            view["orders"] = self.orders.list_for_user(user.id)
        return view

