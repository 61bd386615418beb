# main.py
import os
import logging
from datetime import datetime
from typing import Optional

import sqlalchemy
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from alerts import low_stock_message, send_stock_alert
from config import (
    CORS_ORIGINS,
    DATABASE_URL1,
    LOW_STOCK_ALERTS,
    SEED_SAMPLE_DATA,
    TAX_RATE,
    configure_logging,
)
from errors import ConflictError, NotFoundError, StoreError
from filters import Contains, DateRange, Equals, Filter, InStock, NumberRange, Pagination, TextSearch
from models import database, metadata
from notes import router as notes_router
from schemas import (
    AuthResponse,
    Bill,
    BillCreate,
    BillList,
    BillResponse,
    BillStatus,
    BillUpdate,
    Dashboard,
    InventoryStatus,
    Medicine,
    MedicineCreate,
    MedicineList,
    MedicineResponse,
    MedicineUpdate,
    Message,
    SigninRequest,
    SignupRequest,
    TokenData,
    User,
    UserPublic,
)
from security import (
    create_user_token,
    get_current_user,
    get_password_hash,
    require_admin,
    verify_password,
)
from store import Collection, DocumentStore

# -------------------------------------------------------------------
# 1. Logging and the document store
# -------------------------------------------------------------------

configure_logging()
logger = logging.getLogger(__name__)


def build_store() -> DocumentStore:
    if SEED_SAMPLE_DATA:
        return DocumentStore.with_sample_data(tax_rate=TAX_RATE)
    return DocumentStore(tax_rate=TAX_RATE)


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


# -------------------------------------------------------------------
# 2. FastAPI app instantiation & CORS middleware
# -------------------------------------------------------------------

app = FastAPI(title="Medical Billing API")
app.state.store = build_store()

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------------------------------------------------
# 3. Error mapping
# -------------------------------------------------------------------


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# -------------------------------------------------------------------
# 4. Startup / Shutdown events
# -------------------------------------------------------------------

@app.on_event("startup")
async def startup():
    # Create the notes table if it doesn't exist, then connect
    sync_engine = sqlalchemy.create_engine(DATABASE_URL1)
    metadata.create_all(sync_engine)
    sync_engine.dispose()
    await database.connect()


@app.on_event("shutdown")
async def shutdown():
    await database.disconnect()

# -------------------------------------------------------------------
# 5. Auth Endpoints: signup, signin, current identity
# -------------------------------------------------------------------


def _public(user: User) -> UserPublic:
    return UserPublic(id=user.id, name=user.name, email=user.email, role=user.role)


@app.post("/api/auth/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(payload: SignupRequest, store: DocumentStore = Depends(get_store)):
    """
    Register a user and hand back a token for it.
    """
    email = payload.email.lower()
    if store.find_one(Collection.USERS, Filter.of(Equals(field="email", value=email))):
        raise ConflictError("User with this email already exists")
    user = store.create(Collection.USERS, {
        "name": payload.name,
        "email": email,
        "password": get_password_hash(payload.password),
        "role": payload.role,
    })
    return {"message": "User created successfully", "user": _public(user), "token": create_user_token(user)}


@app.post("/api/auth/signin", response_model=AuthResponse)
async def signin(payload: SigninRequest, store: DocumentStore = Depends(get_store)):
    """
    Exchange email & password for a JWT access token.
    """
    user = store.find_one(Collection.USERS, Filter.of(Equals(field="email", value=payload.email.strip().lower())))
    if not user or not verify_password(payload.password, user.password):
        raise HTTPException(status_code=400, detail="Invalid email or password")
    return {"message": "Signin successful", "user": _public(user), "token": create_user_token(user)}


@app.get("/api/auth/me", response_model=TokenData)
async def read_current_user(current_user: TokenData = Depends(get_current_user)):
    return current_user

# -------------------------------------------------------------------
# 6. Medicine Endpoints
# -------------------------------------------------------------------


@app.get("/api/medicines", response_model=MedicineList)
async def list_medicines(
    search: str = "",
    category: str = "",
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    in_stock: bool = Query(False, alias="inStock"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    store: DocumentStore = Depends(get_store),
):
    """
    List active medicines with search, filters and pagination.
    """
    query = Filter.of(Equals(field="is_active", value=True))
    if search:
        query = query.and_(TextSearch(term=search))
    if category:
        query = query.and_(Contains(field="category", value=category))
    if min_price is not None or max_price is not None:
        query = query.and_(NumberRange(field="price", gte=min_price, lte=max_price))
    if in_stock:
        query = query.and_(InStock())

    pagination = Pagination(page=page, limit=limit)
    total = store.count(Collection.MEDICINES, query)
    return {
        "medicines": store.find(Collection.MEDICINES, query, pagination),
        "pagination": {"current": page, "pages": pagination.pages(total), "total": total},
    }


@app.post(
    "/api/medicines",
    response_model=MedicineResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_user)],
)
async def add_medicine(med: MedicineCreate, store: DocumentStore = Depends(get_store)):
    """
    Add a new medicine. Requires valid JWT token.
    """
    medicine = store.create(Collection.MEDICINES, {**med.model_dump(), "is_active": True})
    return {"message": "Medicine created successfully", "medicine": medicine}


@app.get("/api/medicines/{medicine_id}", response_model=Medicine)
async def get_medicine(medicine_id: str, store: DocumentStore = Depends(get_store)):
    """
    Retrieve a single medicine by ID, including deactivated ones.
    """
    medicine = store.find_by_id(Collection.MEDICINES, medicine_id)
    if medicine is None:
        raise NotFoundError("Medicine not found")
    return medicine


@app.put(
    "/api/medicines/{medicine_id}",
    response_model=MedicineResponse,
    dependencies=[Depends(get_current_user)],
)
async def update_medicine(medicine_id: str, med_update: MedicineUpdate, store: DocumentStore = Depends(get_store)):
    """
    Update any subset of a medicine's fields. Requires valid JWT token.
    """
    medicine = store.update(Collection.MEDICINES, medicine_id, med_update)
    if medicine is None:
        raise NotFoundError("Medicine not found")
    return {"message": "Medicine updated successfully", "medicine": medicine}


@app.delete(
    "/api/medicines/{medicine_id}",
    response_model=Message,
    dependencies=[Depends(require_admin)],
)
async def delete_medicine(medicine_id: str, store: DocumentStore = Depends(get_store)):
    """
    Soft delete a medicine. Admin only.
    """
    if store.deactivate_medicine(medicine_id) is None:
        raise NotFoundError("Medicine not found")
    return {"message": "Medicine deleted successfully"}

# -------------------------------------------------------------------
# 7. Bill Endpoints
# -------------------------------------------------------------------


@app.get("/api/bills", response_model=BillList, dependencies=[Depends(get_current_user)])
async def list_bills(
    bill_status: Optional[BillStatus] = Query(None, alias="status"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    store: DocumentStore = Depends(get_store),
):
    """
    List bills, newest first.
    """
    query = Filter()
    if bill_status:
        query = query.and_(Equals(field="status", value=bill_status))
    if date_from or date_to:
        query = query.and_(DateRange(field="created_at", gte=date_from, lte=date_to))

    pagination = Pagination(page=page, limit=limit)
    total = store.count(Collection.BILLS, query)
    return {
        "bills": store.with_creators(store.find(Collection.BILLS, query, pagination)),
        "pagination": {"current": page, "pages": pagination.pages(total), "total": total},
    }


def _alert_low_stock(store: DocumentStore, bill: Bill) -> None:
    names = []
    for item in bill.items:
        medicine = store.find_by_id(Collection.MEDICINES, item.medicine_id)
        if medicine is not None and medicine.stock <= medicine.min_stock and medicine.name not in names:
            names.append(medicine.name)
    if names:
        send_stock_alert(low_stock_message(names))


@app.post("/api/bills", response_model=BillResponse, status_code=status.HTTP_201_CREATED)
async def create_bill(
    payload: BillCreate,
    background_tasks: BackgroundTasks,
    current_user: TokenData = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    """
    Bill a patient and take the billed quantities out of stock.
    """
    bill = store.create_bill(payload, created_by=current_user.user_id)
    if LOW_STOCK_ALERTS:
        background_tasks.add_task(_alert_low_stock, store, bill)
    return {"message": "Bill created successfully", "bill": bill}


@app.get("/api/bills/{bill_id}", response_model=Bill, dependencies=[Depends(get_current_user)])
async def get_bill(bill_id: str, store: DocumentStore = Depends(get_store)):
    bill = store.find_by_id(Collection.BILLS, bill_id)
    if bill is None:
        raise NotFoundError("Bill not found")
    return bill


@app.put("/api/bills/{bill_id}", response_model=BillResponse, dependencies=[Depends(get_current_user)])
async def update_bill(bill_id: str, bill_update: BillUpdate, store: DocumentStore = Depends(get_store)):
    """
    Change a bill's status, payment method or patient details.
    """
    bill = store.update(Collection.BILLS, bill_id, bill_update)
    if bill is None:
        raise NotFoundError("Bill not found")
    return {"message": "Bill updated successfully", "bill": bill}

# -------------------------------------------------------------------
# 8. Dashboard & Inventory Status (low-stock & expiry alerts)
# -------------------------------------------------------------------


@app.get("/api/dashboard", response_model=Dashboard, dependencies=[Depends(get_current_user)])
async def dashboard(store: DocumentStore = Depends(get_store)):
    return {
        "overview": store.dashboard_summary(),
        "recent_bills": store.recent_bills(5),
        "top_selling_medicines": store.top_selling_medicines(5),
    }


@app.get("/api/inventory/status", response_model=InventoryStatus, dependencies=[Depends(get_current_user)])
async def inventory_status(
    expiry_within_days: int = 30,
    send_alerts: bool = False,
    store: DocumentStore = Depends(get_store),
):
    """
    Returns two lists:
      - active medicines at or below their minimum stock
      - active medicines expiring within expiry_within_days
    """
    low_stock = store.low_stock_medicines()
    alert_sent = None
    if send_alerts and low_stock:
        alert_sent = send_stock_alert(low_stock_message(med.name for med in low_stock))

    return {
        "low_stock": low_stock,
        "expiring_soon": store.expiring_medicines(expiry_within_days),
        "alert_sent": alert_sent,
    }

# -------------------------------------------------------------------
# 9. Notes & Health Check
# -------------------------------------------------------------------


app.include_router(notes_router)


@app.get("/health")
async def health_check():
    """
    Simple health check endpoint.
    """
    return {"status": "OK", "timestamp": datetime.utcnow()}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
