"""Per-user address book."""

from __future__ import annotations

from typing import Any

from .errors import AddressNotFoundError
from .models import Address, AddressType, _generate_id, _utc_now
from .storage import Repository


class AddressStore:
    """Saved addresses. Each user has at most one default address per type."""

    def __init__(self, repository: Repository[Address]):
        self.repository = repository

    def list(self, user_id: str) -> list[Address]:
        """Addresses for a user, defaults first, then newest first."""
        addresses = [a for a in self.repository.values() if a.user_id == user_id]
        addresses.sort(key=lambda a: a.created_at, reverse=True)
        addresses.sort(key=lambda a: not a.is_default)
        return addresses

    def get(self, user_id: str, address_id: str) -> Address:
        """
        Get one of the user's addresses.

        Raises:
            AddressNotFoundError: If address doesn't exist or belongs to someone else.
        """
        address = self.repository.get(address_id)
        if address is None or address.user_id != user_id:
            raise AddressNotFoundError(address_id)
        return address

    def create(
        self,
        user_id: str,
        type: AddressType,
        first_name: str,
        last_name: str,
        address1: str,
        city: str,
        state: str,
        postal_code: str,
        country: str,
        address2: str | None = None,
        is_default: bool = False,
    ) -> Address:
        if is_default:
            self._clear_default(user_id, type)

        now = _utc_now()
        address = Address(
            id=_generate_id(),
            user_id=user_id,
            type=type,
            first_name=first_name,
            last_name=last_name,
            address1=address1,
            address2=address2,
            city=city,
            state=state,
            postal_code=postal_code,
            country=country,
            is_default=is_default,
            created_at=now,
            updated_at=now,
        )
        self.repository.put(address.id, address)
        return address

    def update(self, user_id: str, address_id: str, **changes: Any) -> Address:
        """
        Overwrite the given fields of an address.

        Making an address the default clears the previous default of the
        same type.
        """
        address = self.get(user_id, address_id)
        for name, value in changes.items():
            if not hasattr(address, name) or name in ("id", "user_id", "created_at"):
                raise ValueError(f"Unknown address field: {name}")
            setattr(address, name, value)

        if address.is_default:
            self._clear_default(user_id, address.type, keep=address.id)

        address.updated_at = _utc_now()
        self.repository.put(address.id, address)
        return address

    def delete(self, user_id: str, address_id: str) -> None:
        address = self.get(user_id, address_id)
        self.repository.delete(address.id)

    def _clear_default(self, user_id: str, type: AddressType, keep: str | None = None) -> None:
        for other in self.repository.values():
            if (
                other.user_id == user_id
                and other.type == type
                and other.is_default
                and other.id != keep
            ):
                other.is_default = False
                other.updated_at = _utc_now()
                self.repository.put(other.id, other)
