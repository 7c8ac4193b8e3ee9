"""
FastAPI REST API Module

Exposes the asset contract over HTTP: asset CRUD, balance and status
updates, transaction history and demo seeding. Request parsing and error
kind to status code mapping happen here; business rules do not.
"""

from decimal import Decimal
from datetime import datetime, timezone
from typing import Optional
from fastapi import FastAPI, Depends, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
import uvicorn

from . import __version__
from .config import AssetLedgerConfig, get_config
from .contract import AssetContract
from .errors import (
    AssetLedgerError, AlreadyExistsError, NotFoundError, UnauthorizedError,
    InvalidStateError, InsufficientFundsError, InvalidArgumentError,
    DeserializeError, StoreFailureError
)
from .logging_config import setup_logging
from .storage import WorldStateInterface, create_world_state


STATUS_BY_ERROR = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AlreadyExistsError: status.HTTP_409_CONFLICT,
    UnauthorizedError: status.HTTP_401_UNAUTHORIZED,
    InvalidStateError: status.HTTP_409_CONFLICT,
    InsufficientFundsError: status.HTTP_400_BAD_REQUEST,
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    DeserializeError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    StoreFailureError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# Pydantic models for API requests
class CreateAssetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    msisdn: str = Field(..., min_length=1)
    dealer_id: str = Field(..., alias="dealerId")
    mpin: str
    balance: Decimal = Field(..., description="Opening balance")
    status: str = "ACTIVE"
    remarks: str = ""


class UpdateBalanceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mpin: str
    amount: Decimal
    trans_type: str = Field(..., alias="transType", description="CREDIT or DEBIT")
    remarks: str = ""


class UpdateStatusRequest(BaseModel):
    status: str
    remarks: str = ""


class LedgerSystem:
    """World state and contract wired together from configuration"""

    def __init__(self, config: Optional[AssetLedgerConfig] = None,
                 world_state: Optional[WorldStateInterface] = None):
        self.config = config or get_config()
        self.world_state = world_state or create_world_state(
            self.config.storage_backend, self.config.sqlite_path
        )
        self.contract = AssetContract(
            self.world_state,
            active_status=self.config.active_status,
            transaction_key_prefix=self.config.transaction_key_prefix
        )
        if self.config.seed_on_startup:
            self.contract.initialize_defaults()


config = get_config()
logger = setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)

# Global ledger system instance
ledger_system = LedgerSystem(config)


def get_ledger_system() -> LedgerSystem:
    return ledger_system


app = FastAPI(
    title="Asset Ledger API",
    description="Subscriber balances with an append-only transaction history",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AssetLedgerError)
async def handle_ledger_error(request: Request, exc: AssetLedgerError):
    status_code = STATUS_BY_ERROR.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content={"error": exc.kind, "detail": exc.message})


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "asset_ledger_api",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.post("/api/v1/ledger/init")
async def initialize_ledger(system: LedgerSystem = Depends(get_ledger_system)):
    """Seed the default demo assets"""
    assets = system.contract.initialize_defaults()
    return {"message": "Ledger initialized successfully", "assets": len(assets)}


@app.get("/api/v1/assets")
async def list_assets(system: LedgerSystem = Depends(get_ledger_system)):
    """Get all assets"""
    return [asset.public_dict() for asset in system.contract.list_all()]


@app.post("/api/v1/assets", status_code=status.HTTP_201_CREATED)
async def create_asset(
    request: CreateAssetRequest,
    system: LedgerSystem = Depends(get_ledger_system),
    x_request_id: Optional[str] = Header(None)
):
    """Create a new asset"""
    asset = system.contract.create(
        msisdn=request.msisdn,
        dealer_id=request.dealer_id,
        mpin=request.mpin,
        balance=request.balance,
        status=request.status,
        remarks=request.remarks,
        tx_id=x_request_id
    )
    return {"message": "Asset created successfully", "msisdn": asset.msisdn}


@app.get("/api/v1/assets/{msisdn}")
async def get_asset(msisdn: str, system: LedgerSystem = Depends(get_ledger_system)):
    """Get asset by MSISDN"""
    return system.contract.read(msisdn).public_dict()


@app.put("/api/v1/assets/{msisdn}/balance")
async def update_balance(
    msisdn: str,
    request: UpdateBalanceRequest,
    system: LedgerSystem = Depends(get_ledger_system),
    x_request_id: Optional[str] = Header(None)
):
    """Credit or debit an asset"""
    asset = system.contract.update_balance(
        msisdn=msisdn,
        mpin=request.mpin,
        amount=request.amount,
        trans_type=request.trans_type,
        remarks=request.remarks,
        tx_id=x_request_id
    )
    return {"message": "Balance updated successfully", "newBalance": str(asset.balance)}


@app.put("/api/v1/assets/{msisdn}/status")
async def update_status(
    msisdn: str,
    request: UpdateStatusRequest,
    system: LedgerSystem = Depends(get_ledger_system),
    x_request_id: Optional[str] = Header(None)
):
    """Change an asset's status"""
    system.contract.update_status(msisdn, request.status, request.remarks, tx_id=x_request_id)
    return {"message": "Status updated successfully"}


@app.delete("/api/v1/assets/{msisdn}")
async def delete_asset(
    msisdn: str,
    system: LedgerSystem = Depends(get_ledger_system),
    x_request_id: Optional[str] = Header(None)
):
    """Delete an asset"""
    system.contract.delete(msisdn, tx_id=x_request_id)
    return {"message": "Asset deleted successfully"}


@app.get("/api/v1/assets/{msisdn}/transactions")
async def get_transaction_history(msisdn: str, system: LedgerSystem = Depends(get_ledger_system)):
    """Get an asset's transaction history"""
    return [transaction.to_dict() for transaction in system.contract.history_for(msisdn)]


def run_server(host: str = "0.0.0.0", port: int = 8080, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "asset_ledger.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
