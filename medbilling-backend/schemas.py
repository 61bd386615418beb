"""
Database Schemas for the medical billing backend

Each record model represents one collection held by the DocumentStore:
- User -> "users"
- Medicine -> "medicines"
- Bill -> "bills"

Field names are snake_case in Python and camelCase on the wire
(``min_stock`` <-> ``minStock``).
"""

from datetime import date, datetime
from typing import ClassVar, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

Role = Literal["admin", "staff"]
PaymentMethod = Literal["cash", "card", "insurance"]
BillStatus = Literal["pending", "paid", "cancelled"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Document(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    # fields a free-text search looks at
    search_fields: ClassVar[Tuple[str, ...]] = ()

    id: str
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------

class User(Document):
    name: str = Field(..., min_length=1, description="Display name")
    email: EmailStr = Field(..., description="Unique, stored lowercase")
    password: str = Field(..., description="BCrypt hash of the password")
    role: Role = Field("staff", description="admin or staff")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class Medicine(Document):
    search_fields: ClassVar[Tuple[str, ...]] = ("name", "description")

    name: str = Field(..., min_length=1, examples=["Paracetamol 500mg"])
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    min_stock: int = Field(10, ge=0, description="Low-stock threshold")
    manufacturer: str = Field(..., min_length=1)
    expiry_date: date
    batch_number: str = Field(..., min_length=1)
    is_active: bool = Field(True, description="False once soft deleted")


class BillItem(CamelModel):
    medicine_id: str
    medicine_name: str = Field(..., description="Snapshot of the medicine name at billing time")
    quantity: int = Field(..., ge=1)
    unit_price: float = Field(..., ge=0, description="Snapshot of the medicine price at billing time")
    total_price: float = Field(..., ge=0)


class Bill(Document):
    bill_number: str
    patient_name: str = Field(..., min_length=1)
    patient_phone: Optional[str] = None
    items: List[BillItem]
    subtotal: float = Field(..., ge=0)
    tax_rate: float = Field(0.10, ge=0)
    tax_amount: float = Field(..., ge=0)
    discount: float = Field(0, ge=0)
    total: float = Field(..., ge=0)
    payment_method: PaymentMethod = "cash"
    status: BillStatus = "pending"
    created_by: str = Field(..., description="ID of the user who created the bill")


# ---------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------

class MedicineCreate(CamelModel):
    name: str = Field(..., min_length=1, examples=["Paracetamol 500mg"])
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, examples=["Analgesic"])
    price: float = Field(..., ge=0, examples=[0.5])
    stock: int = Field(0, ge=0, examples=[150])
    min_stock: int = Field(10, ge=0, examples=[20])
    manufacturer: str = Field(..., min_length=1)
    expiry_date: date = Field(..., examples=["2026-12-31"])
    batch_number: str = Field(..., min_length=1, examples=["PC001"])


class MedicineUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    min_stock: Optional[int] = Field(None, ge=0)
    manufacturer: Optional[str] = Field(None, min_length=1)
    expiry_date: Optional[date] = None
    batch_number: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None


class BillItemIn(CamelModel):
    medicine_id: str
    quantity: int = Field(..., ge=1)


class BillCreate(CamelModel):
    patient_name: str = Field(..., min_length=1)
    patient_phone: Optional[str] = None
    items: List[BillItemIn] = Field(..., min_length=1)
    discount: float = Field(0, ge=0)
    payment_method: PaymentMethod = "cash"

    @field_validator("discount", mode="before")
    @classmethod
    def default_discount(cls, v):
        return 0 if v is None else v

    @field_validator("payment_method", mode="before")
    @classmethod
    def default_payment_method(cls, v):
        return "cash" if v is None else v


class BillUpdate(CamelModel):
    patient_name: Optional[str] = Field(None, min_length=1)
    patient_phone: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    status: Optional[BillStatus] = None


class SignupRequest(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6, examples=["strongpassword123"])
    role: Role = "staff"


class SigninRequest(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenData(BaseModel):
    user_id: str
    email: Optional[str] = None
    role: Role = "staff"


# ---------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------

class Message(CamelModel):
    message: str


class UserPublic(CamelModel):
    id: str
    name: str
    email: str
    role: Role


class AuthResponse(CamelModel):
    message: str
    user: UserPublic
    token: str


class PageInfo(CamelModel):
    current: int
    pages: int
    total: int


class MedicineList(CamelModel):
    medicines: List[Medicine]
    pagination: PageInfo


class MedicineResponse(CamelModel):
    message: str
    medicine: Medicine


class BillWithCreator(Bill):
    created_by_name: str


class BillList(CamelModel):
    bills: List[BillWithCreator]
    pagination: PageInfo


class BillResponse(CamelModel):
    message: str
    bill: Bill


class SalesFigures(CamelModel):
    total_sales: float = 0
    total_bills: int = 0


class DashboardSummary(CamelModel):
    total_medicines: int
    low_stock_medicines: int
    todays_sales: SalesFigures
    monthly_sales: SalesFigures


class TopSeller(CamelModel):
    medicine_id: str
    medicine_name: str
    total_quantity: int = 0
    total_revenue: float = 0


class Dashboard(CamelModel):
    overview: DashboardSummary
    recent_bills: List[BillWithCreator]
    top_selling_medicines: List[TopSeller]


class InventoryStatus(BaseModel):
    low_stock: List[Medicine]
    expiring_soon: List[Medicine]
    alert_sent: Optional[bool] = None


# ---------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------

class NoteIn(CamelModel):
    title: str = Field(..., min_length=1, examples=["Groceries"])
    content: str = Field(..., min_length=1, examples=["Milk, eggs, bread"])


class NoteUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)


class NoteOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str
    created_at: datetime
    updated_at: datetime


class NoteResponse(CamelModel):
    message: str
    note: NoteOut
