"""
Pydantic models for API requests and responses.

Request fields are optional at the model level; required fields are checked
by the database client so every entry point reports them the same way.
"""

from typing import Optional

from pydantic import BaseModel, Field


# Request bodies
class ProductCreate(BaseModel):
    """Body of POST /api/products."""
    id_produk: Optional[str] = Field(None, description="Unique product code")
    nama_produk: Optional[str] = Field(None, description="Display name")
    kategori_produk: Optional[str] = Field(None, description="Category")


class ProductUpdate(BaseModel):
    """Body of PUT /api/products/{id_produk}."""
    nama_produk: Optional[str] = None
    kategori_produk: Optional[str] = None


class StockCreate(BaseModel):
    """Body of POST /api/stock. ``nama_produk`` is accepted but the product's own name is stored."""
    id_produk: Optional[str] = None
    nama_produk: Optional[str] = None
    jumlah_stok: Optional[int] = Field(None, description="Quantity to add")


class StockUpdate(BaseModel):
    """Body of PUT /api/stock/{id_produk}."""
    jumlah_stok: Optional[int] = Field(None, description="New quantity")


class EmployeeIn(BaseModel):
    """Body of POST /api/employees and PUT /api/employees/{id}."""
    nama: Optional[str] = None
    posisi: Optional[str] = None
    email: Optional[str] = None


# Responses
class Product(BaseModel):
    id: int
    id_produk: str
    nama_produk: str
    kategori_produk: Optional[str] = None


class Stock(BaseModel):
    id: int
    id_produk: str
    nama_produk: str
    jumlah_stok: int


class StockWithCategory(Stock):
    kategori_produk: Optional[str] = None


class Employee(BaseModel):
    id: int
    nama: str
    posisi: str
    email: Optional[str] = None


class DashboardSummary(BaseModel):
    """Dashboard headline counts."""
    total_produk: int
    total_stok_unit: int
    total_karyawan: int


class ProductDeleted(BaseModel):
    message: str
    deleted_product: Product


class StockDeleted(BaseModel):
    message: str
    deleted_stock: Stock


class EmployeeDeleted(BaseModel):
    message: str
    deleted_employee: Employee


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""
    error: str
    message: str


class HealthCheck(BaseModel):
    """Health check response model."""
    status: str
    database_connected: bool
    product_count: Optional[int] = None
    stock_row_count: Optional[int] = None
    employee_count: Optional[int] = None
    timestamp: str
    error: Optional[str] = None
