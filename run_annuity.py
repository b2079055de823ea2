#!/usr/bin/env python3
"""
run_annuity.py - Life Annuity Calculator

Values one annuity from the command line:
1. Validate the inputs with the calculator's form ranges
2. Run the valuation engine
3. Print the summary and the projection table
4. Optionally export (JSON payload, CSV projections) and record in history

Usage:
    python run_annuity.py --age 65 --sex male --rate 2.5 --amount 12000

    python run_annuity.py \\
        --type reversible --age 65 --sex male --rate 2.5 --amount 12000 \\
        --reversal 60 --spouse-age 62 \\
        --history ~/.annuity/history.json --csv projections.csv

Author: Annuity Valuation Project
Version: 1.0.0
"""

import argparse
import json
import sys
import logging
from typing import Any, Dict, List, Optional

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


ANNUITY_TYPES = ['simple', 'reversible', 'temporary', 'deferred', 'growing']


def _form_record(args: argparse.Namespace) -> Dict[str, Any]:
    """Map command line options onto the calculator form fields."""
    record = {
        'annuityType': args.type,
        'age': args.age,
        'gender': args.sex,
        'interestRate': args.rate,
        'annualAmount': args.amount,
        'mortalityTable': args.table,
        'duration': args.duration,
        'deferralPeriod': args.deferral,
        'growthRate': args.growth,
        'reversalRate': args.reversal,
        'spouseAge': args.spouse_age,
    }
    return {key: value for key, value in record.items() if value is not None}


def print_summary(params, result) -> None:
    from annuity_valuation import type_label

    print("=" * 70)
    print(f"LIFE ANNUITY VALUATION - {type_label(params.annuity_type)}")
    print("=" * 70)
    print(f"Age / sex:        {params.age} / {params.sex.value}")
    print(f"Mortality table:  {params.mortality_table}")
    print(f"Interest rate:    {params.interest_rate:.2f}%")
    print(f"Annual amount:    {params.annual_amount:,.0f}")
    print()
    print(f"Present value:    {result.present_value:,}")
    print(f"Monthly payment:  {result.monthly_payment:,}")
    print(f"Total payments:   {result.total_payments:,}")
    print(f"Life expectancy:  {result.life_expectancy:.1f} years")
    print()

    if result.projections:
        print(f"{'Year':>4}  {'Payment':>12}  {'Cumulative':>12}  {'Probability':>11}")
        print("-" * 45)
        for point in result.projections:
            print(f"{point.year:>4}  {point.payment:>12,}  "
                  f"{point.cumulative_payment:>12,}  {point.probability:>11.2f}")
        print()


def run_annuity(record: Dict[str, Any],
                json_output: bool = False,
                csv_path: Optional[str] = None,
                history_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Validate, value and report one annuity.

    Args:
        record: Calculator form fields (camelCase keys)
        json_output: Print the JSON export payload instead of the summary
        csv_path: Write the projection table to this CSV file
        history_path: Append the calculation to this JSON history store

    Returns:
        Dict with the parameters, the result and the history record (if any)
    """
    from annuity_valuation import (
        AnnuityRequest,
        CalculationHistory,
        JsonRecordStore,
        build_export_payload,
        create_engine,
        export_csv,
        projections_to_dataframe,
    )

    params = AnnuityRequest.model_validate(record).to_parameters()
    engine = create_engine()

    history_record = None
    if history_path:
        store = JsonRecordStore(history_path)
        history = CalculationHistory.load(store)
        history_record = history.record(params, engine)
        history.save(store)
        result = history_record.result
    else:
        result = engine.evaluate(params)

    if json_output:
        print(json.dumps(build_export_payload(params, result), indent=2))
    else:
        print_summary(params, result)

    if csv_path:
        export_csv(projections_to_dataframe(result), csv_path)

    return {
        'parameters': params,
        'result': result,
        'history_record': history_record,
    }


def list_mortality_tables() -> List[str]:
    from annuity_valuation import get_mortality_calculator, list_tables

    calculator = get_mortality_calculator()
    print(f"{'Table':<10}  {'e(65) male':>10}  {'e(65) female':>12}")
    for table_id in list_tables():
        male = calculator.life_expectancy(65, 'male', table_id)
        female = calculator.life_expectancy(65, 'female', table_id)
        print(f"{table_id:<10}  {male:>10.1f}  {female:>12.1f}")
    return list_tables()


def main():
    parser = argparse.ArgumentParser(
        description='Value a life annuity',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Simple life annuity
  python run_annuity.py --age 65 --sex male --rate 2.5 --amount 12000

  # Temporary annuity, JSON export payload
  python run_annuity.py --type temporary --duration 10 \\
      --age 60 --sex female --rate 2 --amount 9000 --json

  # Available mortality tables
  python run_annuity.py --list-tables
"""
    )

    parser.add_argument('--type', choices=ANNUITY_TYPES, default='simple',
                        help='Annuity type (default: simple)')
    parser.add_argument('--age', type=int, help='Age of the annuitant (18-100)')
    parser.add_argument('--sex', choices=['male', 'female'], help='Sex of the annuitant')
    parser.add_argument('--rate', type=float, help='Technical interest rate in percent (0-10)')
    parser.add_argument('--amount', type=float, help='Annual payment amount')
    parser.add_argument('--table', type=str, default='TGH05', help='Mortality table (default: TGH05)')
    parser.add_argument('--duration', type=int, help='Temporary annuity: payment years (1-50)')
    parser.add_argument('--deferral', type=int, help='Deferred annuity: waiting years (0-30)')
    parser.add_argument('--growth', type=float, help='Growing annuity: annual growth in percent (0-10)')
    parser.add_argument('--reversal', type=float, help='Reversible annuity: reversion rate in percent')
    parser.add_argument('--spouse-age', type=int, help='Reversible annuity: spouse age')
    parser.add_argument('--json', action='store_true', help='Print the JSON export payload')
    parser.add_argument('--csv', type=str, help='Write the projection table to a CSV file')
    parser.add_argument('--history', type=str, help='JSON history store to append to')
    parser.add_argument('--list-tables', action='store_true', help='List the mortality tables')

    args = parser.parse_args()

    if args.list_tables:
        list_mortality_tables()
        return

    required = ['age', 'sex', 'rate', 'amount']
    missing = [arg for arg in required if getattr(args, arg) is None]

    if missing:
        print(f"ERROR: Missing required arguments: {', '.join('--' + m for m in missing)}")
        print("Use --help for usage.")
        sys.exit(1)

    from pydantic import ValidationError

    try:
        run_annuity(
            _form_record(args),
            json_output=args.json,
            csv_path=args.csv,
            history_path=args.history,
        )
    except ValidationError as e:
        print("ERROR: Invalid input")
        for error in e.errors():
            field = '.'.join(str(part) for part in error['loc'])
            print(f"  {field}: {error['msg']}")
        sys.exit(1)


if __name__ == '__main__':
    main()
