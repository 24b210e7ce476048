from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class OrderCreateRequest(_Body):
    vendor_id: str | None = Field(default=None, alias="vendorId")
    notes: str | None = None


class OrderUpdateRequest(_Body):
    vendor_id: str | None = Field(default=None, alias="vendorId")
    notes: str | None = None


class OrderItemCreateRequest(_Body):
    # Strict scalars so JSON booleans are refused; range checks live in the
    # order service so bad values get the same message as missing ones.
    part_id: str | None = Field(default=None, alias="partId")
    quantity: StrictInt | StrictStr | None = None
    unit_price: StrictStr | StrictFloat | StrictInt | None = Field(default=None, alias="unitPrice", description="dollars")


class OrderRejectRequest(_Body):
    reason: str | None = None


class PartCreateRequest(_Body):
    name: str | None = None
    sku: str | None = None
    vendor_id: str | None = Field(default=None, alias="vendorId")
    quantity: StrictInt | StrictStr | None = 0
    reorder_point: StrictInt | StrictStr | None = Field(default=0, alias="reorderPoint")
    location: str | None = None
    unit_price: StrictStr | StrictFloat | StrictInt | None = Field(default=None, alias="unitPrice", description="dollars")
    description: str | None = None


class VendorCreateRequest(_Body):
    name: str | None = None
    website: str | None = None
