"""
FastAPI server for the Inventory service.

Provides REST API endpoints for products, stock, employees and the dashboard.
"""

import threading
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, Query, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from . import __version__
from .db_client import InventoryDB
from .errors import InventoryError
from .models import (
    DashboardSummary,
    Employee,
    EmployeeDeleted,
    EmployeeIn,
    ErrorResponse,
    HealthCheck,
    Product,
    ProductCreate,
    ProductDeleted,
    ProductUpdate,
    Stock,
    StockCreate,
    StockDeleted,
    StockUpdate,
    StockWithCategory,
)
from inventory_ops.config import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to the database on startup and close the pool on shutdown."""
    settings = get_settings()

    if not settings.database_url:
        logger.critical("DATABASE_URL is not set. Every database request will fail.")
    else:
        try:
            db = InventoryDB()
            app.state.db = db

            if settings.auto_init_schema:
                db.init_schema()

            health = db.health_check()
            if health['database_connected']:
                logger.info(f"Database connection OK at {health['timestamp']}")
            else:
                logger.error(f"Database connection failed: {health['error']}")
        except InventoryError as e:
            logger.error(f"Database setup failed: {e.message}")

    yield

    db = getattr(app.state, "db", None)
    if db is not None:
        db.dispose()


# FastAPI app instance
app = FastAPI(
    title="Inventory API",
    description="REST API for products, stock and employees of an inventory tracker",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    """Translate inventory errors into JSON error responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed bodies and parameters as 400 with the usual error shape."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"error": "Bad Request", "message": problems},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Report unexpected failures as 500 with the usual error shape."""
    logger.exception(f"{request.method} {request.url.path} failed unexpectedly: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "message": str(exc) or type(exc).__name__},
    )


_db_lock = threading.Lock()


# Dependency to get database client
def get_db(request: Request) -> InventoryDB:
    """Provide the process-wide database client, creating it on first use."""
    db = getattr(request.app.state, "db", None)
    if db is None:
        with _db_lock:
            db = getattr(request.app.state, "db", None)
            if db is None:
                db = InventoryDB()
                request.app.state.db = db
    return db


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Inventory API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=HealthCheck, tags=["Health"])
def health_check(request: Request):
    """Database and API health check."""
    try:
        db = get_db(request)
    except InventoryError as e:
        return {
            "status": "unhealthy",
            "database_connected": False,
            "error": e.message,
            "timestamp": datetime.now().isoformat()
        }
    return db.health_check()


@app.get("/api/dashboard", response_model=DashboardSummary, tags=["Dashboard"])
def get_dashboard(db: InventoryDB = Depends(get_db)):
    """Get product, stock unit and employee totals."""
    return db.dashboard_summary()


# Products
@app.get("/api/products", response_model=List[Product], tags=["Products"])
def list_products(
    search: Optional[str] = Query(None, description="Match name, category or product code"),
    db: InventoryDB = Depends(get_db)
):
    """List products, newest first."""
    return db.list_products(search)


@app.get("/api/products/{id_produk}", response_model=Product, tags=["Products"])
def get_product(id_produk: str, db: InventoryDB = Depends(get_db)):
    return db.get_product(id_produk)


@app.post("/api/products", response_model=Product, status_code=201, tags=["Products"])
def create_product(product: ProductCreate, db: InventoryDB = Depends(get_db)):
    """Create a product. The product code must be unique."""
    return db.create_product(product.id_produk, product.nama_produk, product.kategori_produk)


@app.put("/api/products/{id_produk}", response_model=Product, tags=["Products"])
def update_product(id_produk: str, product: ProductUpdate, db: InventoryDB = Depends(get_db)):
    """Rename or recategorize a product; the stock row picks up the new name."""
    return db.update_product(id_produk, product.nama_produk, product.kategori_produk)


@app.delete("/api/products/{id_produk}", response_model=ProductDeleted, tags=["Products"])
def delete_product(id_produk: str, db: InventoryDB = Depends(get_db)):
    """Delete a product together with its stock row."""
    deleted = db.delete_product(id_produk)
    return {"message": "Product deleted", "deleted_product": deleted}


# Stock
@app.get("/api/stock", response_model=List[StockWithCategory], tags=["Stock"])
def list_stock(
    search: Optional[str] = Query(None, description="Match product name or code"),
    db: InventoryDB = Depends(get_db)
):
    """List stock rows with their product category."""
    return db.list_stock(search)


@app.get("/api/stock/{id_produk}", response_model=StockWithCategory, tags=["Stock"])
def get_stock(id_produk: str, db: InventoryDB = Depends(get_db)):
    return db.get_stock(id_produk)


@app.post("/api/stock", response_model=Stock, status_code=201, tags=["Stock"])
def add_stock(stock: StockCreate, db: InventoryDB = Depends(get_db)):
    """Add units for a product; repeated calls accumulate the quantity."""
    return db.add_stock(stock.id_produk, stock.jumlah_stok)


@app.put("/api/stock/{id_produk}", response_model=Stock, tags=["Stock"])
def update_stock(id_produk: str, stock: StockUpdate, db: InventoryDB = Depends(get_db)):
    """Replace the quantity held for a product."""
    return db.update_stock(id_produk, stock.jumlah_stok)


@app.delete("/api/stock/{id_produk}", response_model=StockDeleted, tags=["Stock"])
def delete_stock(id_produk: str, db: InventoryDB = Depends(get_db)):
    deleted = db.delete_stock(id_produk)
    return {"message": "Stock deleted", "deleted_stock": deleted}


# Employees
@app.get("/api/employees", response_model=List[Employee], tags=["Employees"])
def list_employees(
    search: Optional[str] = Query(None, description="Match name, position or email"),
    db: InventoryDB = Depends(get_db)
):
    return db.list_employees(search)


@app.get("/api/employees/{employee_id}", response_model=Employee, tags=["Employees"])
def get_employee(employee_id: int, db: InventoryDB = Depends(get_db)):
    return db.get_employee(employee_id)


@app.post("/api/employees", response_model=Employee, status_code=201, tags=["Employees"])
def create_employee(employee: EmployeeIn, db: InventoryDB = Depends(get_db)):
    """Create an employee. Name and position are required."""
    return db.create_employee(employee.nama, employee.posisi, employee.email)


@app.put("/api/employees/{employee_id}", response_model=Employee, tags=["Employees"])
def update_employee(employee_id: int, employee: EmployeeIn, db: InventoryDB = Depends(get_db)):
    return db.update_employee(employee_id, employee.nama, employee.posisi, employee.email)


@app.delete("/api/employees/{employee_id}", response_model=EmployeeDeleted, tags=["Employees"])
def delete_employee(employee_id: int, db: InventoryDB = Depends(get_db)):
    deleted = db.delete_employee(employee_id)
    return {"message": "Employee deleted", "deleted_employee": deleted}


# Development server runner
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "inventory_api.fastapi_server:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=True
    )
