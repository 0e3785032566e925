"""solarbill domain models: pydantic models for catalog, input and result."""

from solarbill.models.catalog import (
    AddonDefinition,
    AddonPricingMode,
    ComplexityLevel,
    ModuleDefinition,
    PricingCatalog,
)
from solarbill.models.params import (
    AssetCapability,
    AssetPriceOverride,
    AssetPricingType,
    BillingFrequency,
    CalculationParams,
    CapabilitySnapshot,
    Currency,
    PackageType,
    SelectedAddon,
    SiteBillingItem,
    SiteChargeFrequency,
)
from solarbill.models.result import (
    AddonCost,
    CalculationResult,
    CalculationWarning,
    CapacityBucket,
    DiscountedAssetCost,
    ElumEpmBreakdown,
    ElumInternalBreakdown,
    ElumJubailiBreakdown,
    GraduatedSlice,
    HybridTieredBreakdown,
    ModuleCost,
    PerSiteBreakdown,
    PerSiteLine,
    SiteMinimumAsset,
    SiteMinimumPricingBreakdown,
    ThresholdBucket,
    WarningCode,
)
from solarbill.models.tiers import (
    DiscountTier,
    GraduatedMWTier,
    MinimumChargeTier,
    PerSiteFeeTier,
    PricingTier,
    Tier,
)

__all__ = [
    "AddonCost",
    "AddonDefinition",
    "AddonPricingMode",
    "AssetCapability",
    "AssetPriceOverride",
    "AssetPricingType",
    "BillingFrequency",
    "CalculationParams",
    "CalculationResult",
    "CalculationWarning",
    "CapabilitySnapshot",
    "CapacityBucket",
    "ComplexityLevel",
    "Currency",
    "DiscountTier",
    "DiscountedAssetCost",
    "ElumEpmBreakdown",
    "ElumInternalBreakdown",
    "ElumJubailiBreakdown",
    "GraduatedMWTier",
    "GraduatedSlice",
    "HybridTieredBreakdown",
    "MinimumChargeTier",
    "ModuleCost",
    "ModuleDefinition",
    "PackageType",
    "PerSiteBreakdown",
    "PerSiteFeeTier",
    "PerSiteLine",
    "PricingCatalog",
    "PricingTier",
    "SelectedAddon",
    "SiteBillingItem",
    "SiteChargeFrequency",
    "SiteMinimumAsset",
    "SiteMinimumPricingBreakdown",
    "ThresholdBucket",
    "Tier",
    "WarningCode",
]
