# store.py
"""
In-process document store backing the billing API.

Holds three independent collections (users, medicines, bills) as lists of
pydantic records in insertion order. Queries are linear scans behind
``find``/``count`` so callers never touch the lists directly.
"""

import itertools
import logging
import threading
import uuid
from datetime import date, datetime, timedelta
from enum import Enum
from operator import attrgetter
from typing import Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from errors import InsufficientStock, MedicineNotFound, ValidationFailure
from filters import DateRange, Equals, Filter, Pagination, local_time
from schemas import (
    Bill,
    BillCreate,
    BillItem,
    BillWithCreator,
    DashboardSummary,
    Medicine,
    SalesFigures,
    TopSeller,
    User,
)

logger = logging.getLogger(__name__)


class Collection(str, Enum):
    USERS = "users"
    MEDICINES = "medicines"
    BILLS = "bills"


RECORD_TYPES = {
    Collection.USERS: User,
    Collection.MEDICINES: Medicine,
    Collection.BILLS: Bill,
}

# (field, descending); collections not listed keep insertion order
DEFAULT_SORT = {
    Collection.BILLS: ("created_at", True),
}

STORE_MANAGED_FIELDS = {"id", "created_at", "updated_at"}

SAMPLE_MEDICINES = [
    {
        "name": "Paracetamol 500mg",
        "description": "Pain reliever and fever reducer",
        "category": "Analgesic",
        "price": 0.50,
        "stock": 150,
        "min_stock": 20,
        "manufacturer": "PharmaCorp",
        "expiry_date": date(2027, 12, 31),
        "batch_number": "PC001",
    },
    {
        "name": "Amoxicillin 250mg",
        "description": "Antibiotic for bacterial infections",
        "category": "Antibiotic",
        "price": 2.50,
        "stock": 5,
        "min_stock": 10,
        "manufacturer": "MedLabs",
        "expiry_date": date(2027, 8, 15),
        "batch_number": "ML002",
    },
    {
        "name": "Ibuprofen 400mg",
        "description": "Anti-inflammatory pain reliever",
        "category": "NSAID",
        "price": 1.25,
        "stock": 80,
        "min_stock": 15,
        "manufacturer": "HealthCorp",
        "expiry_date": date(2028, 3, 20),
        "batch_number": "HC003",
    },
]


def local_now() -> datetime:
    return datetime.now().astimezone()


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'record'}: {error['msg']}"
        for error in exc.errors()
    )


class DocumentStore:
    def __init__(self, tax_rate: float = 0.10, clock: Callable[[], datetime] = local_now):
        self.tax_rate = tax_rate
        self._clock = clock
        self._collections: Dict[Collection, list] = {kind: [] for kind in Collection}
        # guards every read-modify-write, including bill stock checks
        self._lock = threading.RLock()
        self._bill_sequence = itertools.count(1)

    @classmethod
    def with_sample_data(cls, **kwargs) -> "DocumentStore":
        store = cls(**kwargs)
        for fields in SAMPLE_MEDICINES:
            store.create(Collection.MEDICINES, fields)
        return store

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _now(self) -> datetime:
        return local_time(self._clock())

    def _validate(self, kind: Collection, data: Mapping):
        try:
            return RECORD_TYPES[kind].model_validate(data)
        except ValidationError as exc:
            raise ValidationFailure(_describe(exc)) from exc

    def _index(self, kind: Collection, record_id: str) -> Optional[int]:
        for index, record in enumerate(self._collections[kind]):
            if record.id == record_id:
                return index
        return None

    def _matching(self, kind: Collection, query: Optional[Filter]) -> list:
        records = self._collections[kind]
        if query is not None:
            records = [record for record in records if query.matches(record)]
        if kind in DEFAULT_SORT:
            field, descending = DEFAULT_SORT[kind]
            # newest insertion first among equal keys
            ordered = reversed(records) if descending else records
            records = sorted(ordered, key=attrgetter(field), reverse=descending)
        return list(records)

    def _new_id(self, kind: Collection) -> str:
        taken = {record.id for record in self._collections[kind]}
        record_id = uuid.uuid4().hex
        while record_id in taken:
            record_id = uuid.uuid4().hex
        return record_id

    def _next_bill_number(self) -> str:
        taken = {bill.bill_number for bill in self._collections[Collection.BILLS]}
        while True:
            number = f"BILL-{self._now():%Y%m%d}-{next(self._bill_sequence):05d}"
            if number not in taken:
                return number

    @staticmethod
    def _fields(fields: Union[Mapping, BaseModel], exclude_unset: bool = False) -> dict:
        if isinstance(fields, BaseModel):
            fields = fields.model_dump(exclude_unset=exclude_unset)
        return {key: value for key, value in fields.items() if key not in STORE_MANAGED_FIELDS}

    # -----------------------------------------------------------------
    # Generic operations
    # -----------------------------------------------------------------

    def find(
        self,
        kind: Collection,
        query: Optional[Filter] = None,
        pagination: Optional[Pagination] = None,
    ) -> list:
        with self._lock:
            records = self._matching(kind, query)
            if pagination is not None:
                records = pagination.apply(records)
            return [record.model_copy(deep=True) for record in records]

    def count(self, kind: Collection, query: Optional[Filter] = None) -> int:
        with self._lock:
            return len(self._matching(kind, query))

    def find_one(self, kind: Collection, query: Filter):
        with self._lock:
            for record in self._collections[kind]:
                if query.matches(record):
                    return record.model_copy(deep=True)
        return None

    def find_by_id(self, kind: Collection, record_id: str):
        with self._lock:
            index = self._index(kind, record_id)
            if index is None:
                return None
            return self._collections[kind][index].model_copy(deep=True)

    def create(self, kind: Collection, fields: Union[Mapping, BaseModel]):
        now = self._now()
        with self._lock:
            record = self._validate(kind, {
                **self._fields(fields),
                "id": self._new_id(kind),
                "created_at": now,
                "updated_at": now,
            })
            self._collections[kind].append(record)
        logger.info("Created %s record %s", kind.value, record.id)
        return record.model_copy(deep=True)

    def update(self, kind: Collection, record_id: str, fields: Union[Mapping, BaseModel]):
        """Merge ``fields`` into the record; returns ``None`` when the id is unknown."""
        changes = self._fields(fields, exclude_unset=True)
        with self._lock:
            index = self._index(kind, record_id)
            if index is None:
                return None
            current = self._collections[kind][index]
            record = self._validate(kind, {
                **current.model_dump(),
                **changes,
                "updated_at": self._now(),
            })
            self._collections[kind][index] = record
        logger.debug("Updated %s record %s: %s", kind.value, record_id, sorted(changes))
        return record.model_copy(deep=True)

    # -----------------------------------------------------------------
    # Medicines
    # -----------------------------------------------------------------

    def deactivate_medicine(self, medicine_id: str) -> Optional[Medicine]:
        medicine = self.update(Collection.MEDICINES, medicine_id, {"is_active": False})
        if medicine is not None:
            logger.info("Deactivated medicine %s (%s)", medicine.id, medicine.name)
        return medicine

    def low_stock_medicines(self) -> List[Medicine]:
        active = self.find(Collection.MEDICINES, Filter.of(Equals(field="is_active", value=True)))
        return [medicine for medicine in active if medicine.stock <= medicine.min_stock]

    def expiring_medicines(self, within_days: int = 30) -> List[Medicine]:
        cutoff = self._now().date() + timedelta(days=within_days)
        active = self.find(Collection.MEDICINES, Filter.of(Equals(field="is_active", value=True)))
        return [medicine for medicine in active if medicine.expiry_date <= cutoff]

    # -----------------------------------------------------------------
    # Bills
    # -----------------------------------------------------------------

    def create_bill(self, request: Union[BillCreate, Mapping], created_by: str) -> Bill:
        """
        Price every line item, decrement stock, and store a pending bill.

        Stock is decremented item by item as each line is accepted. When a
        later item fails, decrements already applied for earlier items are
        kept.
        """
        if not isinstance(request, BillCreate):
            try:
                request = BillCreate.model_validate(request)
            except ValidationError as exc:
                raise ValidationFailure(_describe(exc)) from exc

        medicines = self._collections[Collection.MEDICINES]
        items = []
        subtotal = 0.0
        with self._lock:
            for item in request.items:
                index = self._index(Collection.MEDICINES, item.medicine_id)
                if index is None:
                    logger.warning("Bill rejected: medicine %s not found", item.medicine_id)
                    raise MedicineNotFound(item.medicine_id)
                medicine = medicines[index]
                if medicine.stock < item.quantity:
                    logger.warning(
                        "Bill rejected: %s has %d in stock, %d requested",
                        medicine.name, medicine.stock, item.quantity,
                    )
                    raise InsufficientStock(medicine.name, medicine.stock)

                total_price = medicine.price * item.quantity
                subtotal += total_price
                items.append(BillItem(
                    medicine_id=medicine.id,
                    medicine_name=medicine.name,
                    quantity=item.quantity,
                    unit_price=medicine.price,
                    total_price=total_price,
                ))
                medicines[index] = medicine.model_copy(update={
                    "stock": medicine.stock - item.quantity,
                    "updated_at": self._now(),
                })
                logger.debug("Stock for %s: %d -> %d", medicine.name, medicine.stock, medicine.stock - item.quantity)

            tax_amount = subtotal * self.tax_rate
            total = subtotal + tax_amount - request.discount
            if total < 0:
                logger.warning("Bill rejected: discount %.2f exceeds total %.2f", request.discount, subtotal + tax_amount)
                raise ValidationFailure("Discount cannot exceed bill total")
            bill = self.create(Collection.BILLS, {
                "bill_number": self._next_bill_number(),
                "patient_name": request.patient_name,
                "patient_phone": request.patient_phone,
                "items": items,
                "subtotal": subtotal,
                "tax_rate": self.tax_rate,
                "tax_amount": tax_amount,
                "discount": request.discount,
                "total": total,
                "payment_method": request.payment_method,
                "status": "pending",
                "created_by": created_by,
            })
        logger.info("Bill %s created for %s, total %.2f", bill.bill_number, bill.patient_name, bill.total)
        return bill

    # -----------------------------------------------------------------
    # Reporting
    # -----------------------------------------------------------------

    def dashboard_summary(self) -> DashboardSummary:
        today = self._now().astimezone().date()
        # rebuilt from the calendar date so the UTC offset of midnight is used
        start_of_day = datetime(today.year, today.month, today.day).astimezone()
        start_of_month = datetime(today.year, today.month, 1).astimezone()
        paid = Filter.of(Equals(field="status", value="paid"))

        def sales_since(start: datetime) -> SalesFigures:
            bills = self.find(Collection.BILLS, paid.and_(DateRange(gte=start)))
            return SalesFigures(total_sales=sum(bill.total for bill in bills), total_bills=len(bills))

        return DashboardSummary(
            total_medicines=self.count(Collection.MEDICINES, Filter.of(Equals(field="is_active", value=True))),
            low_stock_medicines=len(self.low_stock_medicines()),
            todays_sales=sales_since(start_of_day),
            monthly_sales=sales_since(start_of_month),
        )

    def with_creators(self, bills: List[Bill]) -> List[BillWithCreator]:
        """Annotate bills with their creator's display name."""
        annotated = []
        for bill in bills:
            creator = self.find_by_id(Collection.USERS, bill.created_by)
            annotated.append(BillWithCreator(
                **bill.model_dump(),
                created_by_name=creator.name if creator is not None else "System User",
            ))
        return annotated

    def recent_bills(self, limit: int = 5) -> List[BillWithCreator]:
        if limit < 1:
            return []
        return self.with_creators(self.find(Collection.BILLS, pagination=Pagination(limit=limit)))

    def top_selling_medicines(self, limit: int = 5) -> List[TopSeller]:
        sales: Dict[str, TopSeller] = {}
        with self._lock:
            for bill in self._collections[Collection.BILLS]:
                if bill.status != "paid":
                    continue
                for item in bill.items:
                    entry = sales.setdefault(item.medicine_id, TopSeller(
                        medicine_id=item.medicine_id,
                        medicine_name=item.medicine_name,
                    ))
                    entry.total_quantity += item.quantity
                    entry.total_revenue += item.total_price
        ranked = sorted(sales.values(), key=attrgetter("total_quantity"), reverse=True)
        return ranked[:max(limit, 0)]
