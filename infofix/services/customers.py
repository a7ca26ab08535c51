"""
INFOFIX Customer Service

The shop's customer database.

Permissions:
- Admins and managers create, edit, delete and search customers
- A customer may edit their own profile (name, mobile, address, photo)

Name and mobile are required. Emails are unique, ignoring case.
"""

from typing import Optional, List

from pydantic import ValidationError

from ..logging_conf import get_logger
from ..models import Customer, User, Role
from .errors import NotFound, PermissionDenied, WorkflowError


log = get_logger("customers")

MANAGING_ROLES = (Role.ADMIN, Role.MANAGER)
PROFILE_FIELDS = frozenset({"name", "mobile", "address", "photo"})


def _blank(value) -> bool:
    return value is None or not str(value).strip()


class CustomerService:

    def __init__(self, customer_repo, user_repo):
        self.customer_repo = customer_repo
        self.user_repo = user_repo

    async def _actor(self, user_id: str) -> User:
        user = await self.user_repo.get(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found.")
        return user

    async def get_customer(self, customer_id: str) -> Customer:
        customer = await self.customer_repo.get(customer_id)
        if customer is None:
            raise NotFound(f"Customer {customer_id} not found.")
        return customer

    def _require_manager(self, actor: User) -> None:
        if actor.role not in MANAGING_ROLES:
            raise PermissionDenied("Only admins and managers manage customers.")

    async def _check_email(self, customer: Customer) -> None:
        if not customer.email:
            return
        email = customer.email.lower()
        for other in await self.customer_repo.list():
            if other.id != customer.id and other.email.lower() == email:
                raise WorkflowError(
                    "A customer with this email already exists.", code="duplicate_email"
                )

    async def create_customer(self, actor_id: str, **fields) -> Customer:
        actor = await self._actor(actor_id)
        self._require_manager(actor)

        if _blank(fields.get("name")) or _blank(fields.get("mobile")):
            raise WorkflowError("Name and Mobile are required.", code="missing_contact")
        fields.pop("id", None)

        customer = Customer(**fields)
        await self._check_email(customer)
        await self.customer_repo.save(customer)
        log.info("customer created", extra={"actor": actor.id, "customer": customer.id})
        return customer

    async def update_customer(self, customer_id: str, actor_id: str, changes: dict) -> Customer:
        """
        Edit a customer record.

        Customers reach this through their profile, so only their own
        record and only the profile fields.
        """
        actor = await self._actor(actor_id)
        customer = await self.get_customer(customer_id)

        if actor.role == Role.CUSTOMER:
            if actor.id != customer.id or not set(changes) <= PROFILE_FIELDS:
                log.warning("customer edit denied", extra={"actor": actor.id, "customer": customer.id})
                raise PermissionDenied("You can only edit your own profile.")
        else:
            self._require_manager(actor)

        unknown = {k for k in changes if k == "id" or k not in Customer.model_fields}
        if unknown:
            raise WorkflowError(
                f"Cannot change {', '.join(sorted(unknown))}.", code="invalid_change"
            )
        try:
            updated = Customer.model_validate({**customer.model_dump(), **changes})
        except ValidationError as exc:
            raise WorkflowError(str(exc), code="invalid_change") from exc

        if _blank(updated.name) or _blank(updated.mobile):
            raise WorkflowError("Name and Mobile are required.", code="missing_contact")
        await self._check_email(updated)
        await self.customer_repo.save(updated)
        return updated

    async def delete_customer(self, customer_id: str, actor_id: str) -> None:
        actor = await self._actor(actor_id)
        self._require_manager(actor)
        if not await self.customer_repo.delete(customer_id):
            raise NotFound(f"Customer {customer_id} not found.")
        log.info("customer deleted", extra={"actor": actor.id, "customer": customer_id})

    async def search(self, actor_id: str, term: Optional[str] = None) -> List[Customer]:
        """Case-insensitive match on name or email, substring match on mobile."""
        actor = await self._actor(actor_id)
        self._require_manager(actor)
        customers = await self.customer_repo.list()
        if _blank(term):
            return customers
        needle = term.strip().lower()
        return [
            c for c in customers
            if needle in c.name.lower()
            or needle in c.email.lower()
            or term.strip() in c.mobile
        ]
