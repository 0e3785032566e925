"""Add-on costing, independent of the package type.

Resolution order for each add-on:
1. custom_price, used verbatim as the cost
2. quantity-tiered price (custom tiers replace catalog tiers)
3. complexity price (low / medium / high)
4. flat price x quantity

Recurring add-ons are priced per month and multiplied by the months in the
period; one-off add-ons are billed once per invoice.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from solarbill.models.catalog import AddonDefinition, AddonPricingMode
from solarbill.models.params import PackageType, SelectedAddon
from solarbill.models.result import AddonCost, WarningCode
from solarbill.pricing.errors import InputValidationError
from solarbill.pricing.money import ONE, ZERO
from solarbill.pricing.packages.context import PricingContext
from solarbill.pricing.proration import active_months
from solarbill.pricing.tiers import resolve_tier, validate_tiers

logger = logging.getLogger(__name__)


def _metered_quantity(ctx: PricingContext, addon: AddonDefinition) -> Decimal | None:
    if addon.auto_activate_field is None or ctx.params.capabilities is None:
        return None
    return ctx.params.capabilities.metered_value(addon.auto_activate_field)


def collect_addons(ctx: PricingContext) -> list[tuple[SelectedAddon, AddonDefinition, bool]]:
    """Selected add-ons in order, followed by auto-activated ones not already selected.

    Returns:
        (selection, definition, auto_activated) triples.

    Raises:
        InputValidationError: If a selected add-on is not in the catalog, or needs a
            full package and the contract is on starter.
    """
    collected: list[tuple[SelectedAddon, AddonDefinition, bool]] = []
    selected_ids: set[str] = set()
    for selection in ctx.params.selected_addons:
        addon = ctx.catalog.get_addon(selection.id)
        if addon is None:
            raise InputValidationError(
                f"Unknown add-on '{selection.id}'",
                package_type=ctx.package_type.value,
                field="selected_addons",
            )
        if addon.requires_pro and ctx.package_type == PackageType.STARTER:
            raise InputValidationError(
                f"Add-on '{addon.id}' is not available on the starter package",
                package_type=ctx.package_type.value,
                field="selected_addons",
            )
        selected_ids.add(addon.id)
        collected.append((selection, addon, False))

    for addon in ctx.catalog.addons:
        if addon.id in selected_ids:
            continue
        metered = _metered_quantity(ctx, addon)
        if metered is not None and metered > ZERO:
            logger.debug("Auto-activating add-on %s from %s", addon.id, addon.auto_activate_field)
            collected.append((SelectedAddon(id=addon.id), addon, True))
    return collected


def _quantity(ctx: PricingContext, selection: SelectedAddon, addon: AddonDefinition) -> Decimal:
    metered = _metered_quantity(ctx, addon)
    if metered is not None and metered > ZERO and selection.quantity is None:
        quantity = metered
    elif selection.quantity is not None:
        quantity = selection.quantity
    else:
        quantity = ONE
    if quantity < ZERO:
        raise InputValidationError(
            f"Add-on '{addon.id}' has negative quantity {quantity}",
            package_type=ctx.package_type.value,
            field=f"selected_addons.{addon.id}.quantity",
        )
    return quantity


def _site_months(ctx: PricingContext, addon: AddonDefinition) -> Decimal | None:
    """Site-months of satellite data actually active in the period, when computable."""
    params = ctx.params
    if not addon.prorate_by_onboarding:
        return None
    if params.period_start is None or params.period_end is None:
        return None
    enabled = [a for a in params.assets if a.has_solcast]
    if not enabled:
        return None
    if any(a.solcast_onboarding_date is None for a in enabled):
        ctx.warn(
            WarningCode.DATA_GAP_ONBOARDING_DATES,
            f"Some sites lack an onboarding date for '{addon.id}'; "
            "they are billed for the whole period",
            "capabilities.assets.solcast_onboarding_date",
        )
    total = sum(
        active_months(params.period_start, params.period_end, a.solcast_onboarding_date)
        for a in enabled
    )
    return Decimal(total)


def price_addon(
    ctx: PricingContext,
    selection: SelectedAddon,
    addon: AddonDefinition,
    auto_activated: bool = False,
) -> AddonCost:
    """Cost one add-on for this invoice.

    Raises:
        InputValidationError: For a negative quantity or custom price, a
            quantity below the first tier, or a missing complexity level.
        ConfigurationError: If the add-on's tier table is malformed.
    """
    quantity = _quantity(ctx, selection, addon)
    package_type = ctx.package_type.value

    if selection.custom_price is not None:
        if selection.custom_price < ZERO:
            raise InputValidationError(
                f"Add-on '{addon.id}' has negative custom price",
                package_type=package_type,
                field=f"selected_addons.{addon.id}.custom_price",
            )
        return AddonCost(
            addon_id=addon.id,
            addon_name=addon.name,
            cost=ctx.money(selection.custom_price),
            quantity=quantity,
            price_per_unit=selection.custom_price,
            recurring=addon.recurring,
            auto_activated=auto_activated,
        )

    applied_tier: str | None = None
    if addon.pricing_mode == AddonPricingMode.TIERED:
        if selection.custom_tiers:
            tiers = selection.custom_tiers
            field = f"selected_addons.{addon.id}.custom_tiers"
        else:
            tiers = list(addon.pricing_tiers)
            field = f"catalog.addons.{addon.id}.pricing_tiers"
        validate_tiers(tiers, field=field, package_type=package_type)
        if quantity < tiers[0].min_quantity:
            raise InputValidationError(
                f"Add-on '{addon.id}' quantity {quantity} is below the first tier "
                f"minimum {tiers[0].min_quantity}",
                package_type=package_type,
                field=f"selected_addons.{addon.id}.quantity",
            )
        tier = resolve_tier(quantity, tiers, field=field, package_type=package_type)
        unit_price = tier.price_per_unit
        applied_tier = tier.display_label()
    elif addon.pricing_mode == AddonPricingMode.COMPLEXITY:
        if selection.complexity is None:
            raise InputValidationError(
                f"Add-on '{addon.id}' is complexity-priced but no complexity was given",
                package_type=package_type,
                field=f"selected_addons.{addon.id}.complexity",
            )
        unit_price = addon.complexity_price(selection.complexity)
    else:
        unit_price = addon.price if addon.price is not None else ZERO

    billed_months: Decimal | None = None
    if addon.recurring:
        site_months = _site_months(ctx, addon)
        if site_months is not None:
            billed_months = site_months
            raw = unit_price * site_months
        else:
            billed_months = Decimal(ctx.period_months)
            raw = unit_price * quantity * billed_months
    else:
        raw = unit_price * quantity

    return AddonCost(
        addon_id=addon.id,
        addon_name=addon.name,
        cost=ctx.money(raw),
        quantity=quantity,
        price_per_unit=unit_price,
        applied_tier=applied_tier,
        pricing_mode=addon.pricing_mode,
        recurring=addon.recurring,
        billed_months=billed_months,
        auto_activated=auto_activated,
    )


def calculate_addon_costs(ctx: PricingContext) -> list[AddonCost]:
    """Cost every selected and auto-activated add-on, in order."""
    return [
        price_addon(ctx, selection, addon, auto_activated)
        for selection, addon, auto_activated in collect_addons(ctx)
    ]
