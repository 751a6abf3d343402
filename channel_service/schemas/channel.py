"""
Pydantic schemas for channel snapshots.

A ``ChannelSnapshot`` is the read-only view of a channel record that the
directory cache stores in Redis and the scorer consumes.  Nested blocks
mirror the JSONB columns on the ``channels`` table.
"""

from decimal import Decimal

from pydantic import BaseModel, Field


class ChannelCompliance(BaseModel):
    kyc_required: bool = False
    kyc_levels: list[str] = Field(default_factory=list)
    accredited_only: bool = False
    minimum_net_worth: Decimal = Decimal("0")
    supported_regions: list[str] = Field(default_factory=list)
    restricted_regions: list[str] = Field(default_factory=list)


class ChannelAsset(BaseModel):
    asset_id: str
    asset_type: str = ""
    trading_pairs: list[str] = Field(default_factory=list)
    minimum_order: Decimal = Decimal("0")
    maximum_order: Decimal = Decimal("0")
    is_active: bool = True


class TradingFees(BaseModel):
    maker: Decimal = Decimal("0")
    taker: Decimal = Decimal("0")
    flat: Decimal = Decimal("0")


class RailFees(BaseModel):
    """Per-rail fee amounts, used for both deposits and withdrawals."""
    crypto: Decimal = Decimal("0")
    fiat: Decimal = Decimal("0")
    wire: Decimal = Decimal("0")


class ChannelFees(BaseModel):
    trading: TradingFees = Field(default_factory=TradingFees)
    deposit: RailFees = Field(default_factory=RailFees)
    withdrawal: RailFees = Field(default_factory=RailFees)


class PaymentLimits(BaseModel):
    min: Decimal = Decimal("0")
    max: Decimal = Decimal("0")
    daily: Decimal = Decimal("0")
    monthly: Decimal = Decimal("0")


class PaymentMethod(BaseModel):
    method: str
    currencies: list[str] = Field(default_factory=list)
    processing_time: str = ""
    limits: PaymentLimits = Field(default_factory=PaymentLimits)


class ChannelSupport(BaseModel):
    email: str = ""
    phone: str = ""
    chat: bool = False
    hours: str = ""
    languages: list[str] = Field(default_factory=list)
    response_time: str = ""


class ChannelAPI(BaseModel):
    has_read_only_api: bool = False
    has_trading_api: bool = False
    documentation: str = ""


class Insurance(BaseModel):
    coverage: Decimal = Decimal("0")
    provider: str = ""


class CustodyInfo(BaseModel):
    type: str = ""
    provider: str = ""
    segregation: bool = False


class Audit(BaseModel):
    auditor: str
    report_url: str = ""
    scope: str = ""


class ChannelSecurity(BaseModel):
    insurance: Insurance | None = None
    custody: CustodyInfo = Field(default_factory=CustodyInfo)
    audits: list[Audit] = Field(default_factory=list)


class ChannelSnapshot(BaseModel):
    """Everything the matching engine needs to know about a channel."""
    id: str
    name: str
    type: str
    is_active: bool = True
    website: str = ""
    compliance: ChannelCompliance = Field(default_factory=ChannelCompliance)
    supported_assets: list[ChannelAsset] = Field(default_factory=list)
    fees: ChannelFees = Field(default_factory=ChannelFees)
    payment_methods: list[PaymentMethod] = Field(default_factory=list)
    support: ChannelSupport = Field(default_factory=ChannelSupport)
    api: ChannelAPI | None = None
    security: ChannelSecurity = Field(default_factory=ChannelSecurity)

    def supports_asset(self, asset_id: str) -> bool:
        return any(a.asset_id == asset_id for a in self.supported_assets)

    def supports_payment_method(self, method: str) -> bool:
        return any(pm.method == method for pm in self.payment_methods)
