"""
Print (or export) a bulk pricing matrix from the configured CSV data.

Usage: python scripts/print_matrix.py TENANT_ID PRODUCT_ID [PRODUCT_ID ...] [--out matrix.csv]
"""
import argparse
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from wholesale_pricing.config.logging_config import setup_logging
from wholesale_pricing.config.settings import get_settings
from wholesale_pricing.engine.matrix import matrix_to_frame
from wholesale_pricing.engine.models import CustomerContext, PaymentTerms
from wholesale_pricing.engine.pricing_engine import PricingEngine


def main():
    parser = argparse.ArgumentParser(description="Bulk wholesale pricing matrix")
    parser.add_argument("tenant_id")
    parser.add_argument("product_ids", nargs="+")
    parser.add_argument("--group")
    parser.add_argument("--territory")
    parser.add_argument("--terms", help="payment terms, e.g. net_30")
    parser.add_argument("--out", type=Path, help="write CSV instead of printing")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_json)

    engine = PricingEngine.from_settings(settings)
    context = CustomerContext(
        group_id=args.group,
        territory=args.territory,
        payment_terms=PaymentTerms.parse(args.terms) if args.terms else None,
    )
    df = matrix_to_frame(engine.generate_bulk_matrix(args.tenant_id, args.product_ids, context))

    if args.out:
        df.to_csv(args.out, index=False)
        print(f"Wrote {len(df)} rows to {args.out}")
    else:
        print(df.to_string(index=False))


if __name__ == "__main__":
    main()
