import argparse
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from storefront_pricing.config.logging_config import configure_logging
from storefront_pricing.engine import PriceContext, PricingError, PricingService


def parse_args():
    parser = argparse.ArgumentParser(description="Price one product against the sample data and print the trace.")
    parser.add_argument("product_id")
    parser.add_argument("--variant", dest="variant_id")
    parser.add_argument("--customer", dest="customer_id")
    parser.add_argument("--group", dest="groups", action="append", default=[])
    parser.add_argument("--qty", dest="quantity", type=int, default=1)
    parser.add_argument("--cart-total", dest="cart_total", type=float, default=0.0)
    parser.add_argument("--points", type=int, default=0, help="Loyalty points to redeem")
    parser.add_argument("--impact", dest="rule_id", help="Also preview this rule in isolation")
    return parser.parse_args()


def debug():
    args = parse_args()
    configure_logging("DEBUG")

    service = PricingService.from_settings()
    print(f"Loaded {len(service.catalog)} products, "
          f"{len(service.pricing_rules.list_rules())} rules")

    additional_data = {}
    if args.points:
        additional_data = {"apply_loyalty_discount": True, "loyalty_points_to_apply": args.points}

    context = PriceContext(
        variant_id=args.variant_id,
        customer_id=args.customer_id,
        customer_group_ids=args.groups,
        quantity=args.quantity,
        cart_total=args.cart_total,
        additional_data=additional_data,
    )

    print(f"\n--- Pricing {args.product_id} (qty {args.quantity}) ---")
    try:
        result = service.calculate_price(args.product_id, context)
    except PricingError as e:
        print(f"Error: {e.message}")
        return 1

    print(result.get_trace_text())
    for warning in result.warnings:
        print(f"! {warning}")

    if args.rule_id:
        print(f"\n--- Impact of rule {args.rule_id} ---")
        try:
            impact = service.calculate_rule_impact(args.rule_id, args.product_id, context)
        except PricingError as e:
            print(f"Error: {e.message}")
            return 1
        print(f"With full stack: {impact.before_rule.final_price:.2f}")
        print(f"Rule alone:      {impact.after_rule.final_price:.2f}")
        print(f"Impact:          {impact.impact:.2f} ({impact.percentage_impact:.1f}%)")
    return 0


if __name__ == "__main__":
    sys.exit(debug())
