#!/usr/bin/env python3
"""
CVD Risk Engine - Demo CLI

Runs the validator and both risk calculators on a patient record and prints
the results.

Usage:
    python demo_cli.py --sample               # Use sample patient
    python demo_cli.py --file patient.json    # Score a JSON patient record
    python demo_cli.py --sample --json        # Raw JSON output
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from cvdrisk.core.errors import RiskEngineError
from cvdrisk.services.patient_input import PatientRiskInput
from cvdrisk.services.physiological_validator import get_physiological_validator_service
from cvdrisk.services.risk_engine import RiskResult, get_risk_engine

# ============================================================================
# Sample Patient
# ============================================================================

SAMPLE_PATIENT = {
    "age": 58,
    "sex": "male",
    "ethnicity": "south_asian",
    "sbp": 148,
    "dbp": 92,
    "sbp_readings": [146, 152, 148],
    "bp_treated": True,
    "smoking": "moderate",
    "height_cm": 175,
    "weight_kg": 88,
    "total_chol": 6.2,
    "hdl": 1.1,
    "ldl": 4.1,
    "triglycerides": 2.0,
    "lipid_unit": "mmol/L",
    "diabetes": "type2",
    "family_history": True,
    "lpa": 120,
    "lpa_unit": "nmol/L",
}

# ============================================================================
# Display Functions
# ============================================================================

class Colors:
    """ANSI color codes for terminal output."""
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BOLD = '\033[1m'
    END = '\033[0m'
    GRAY = '\033[90m'

CATEGORY_COLORS = {
    "low": Colors.GREEN,
    "moderate": Colors.YELLOW,
    "high": Colors.RED,
}

def print_header(text: str, char: str = "="):
    """Print a formatted header."""
    width = 80
    print()
    print(f"{Colors.BOLD}{Colors.CYAN}{char * width}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.CYAN}{text.center(width)}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.CYAN}{char * width}{Colors.END}")

def print_subheader(text: str):
    """Print a formatted subheader."""
    print()
    print(f"{Colors.BOLD}{Colors.YELLOW}{'─' * 80}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.YELLOW}  {text}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.YELLOW}{'─' * 80}{Colors.END}")

def print_item(label: str, value: str, indent: int = 2):
    """Print a labeled item."""
    spaces = " " * indent
    print(f"{spaces}{Colors.GRAY}{label}:{Colors.END} {value}")

def print_success(text: str):
    print(f"  {Colors.GREEN}✓{Colors.END} {text}")

def print_warning(text: str):
    print(f"  {Colors.YELLOW}!{Colors.END} {text}")

def print_error(text: str):
    print(f"  {Colors.RED}✗{Colors.END} {text}")


def display_validation(patient: PatientRiskInput):
    """Show the physiological plausibility report."""
    report = get_physiological_validator_service().validate_patient(patient)
    print_subheader("PHYSIOLOGICAL VALIDATION")

    for name, result in {**report.fields, **report.composites}.items():
        if not result.is_valid:
            print_error(f"{name}: {result.message}")
        elif result.is_critical or result.is_warning:
            print_warning(f"{name}: {result.message}")
        else:
            print_success(name)

    for message in report.implausible_combinations:
        print_warning(message)


def display_risk(title: str, result: RiskResult):
    """Show one calculator's result."""
    print_subheader(title)
    color = CATEGORY_COLORS.get(result.risk_category.value, "")
    print_item("Base 10-year risk", f"{result.base_risk:.1f}%")
    print_item("Lp(a) modifier", f"x{result.lpa_modifier:.2f}")
    print_item(
        "Modified risk",
        f"{Colors.BOLD}{color}{result.capped_risk:.1f}% ({result.risk_category.value}){Colors.END}",
    )
    if result.healthy_risk is not None:
        print_item("Healthy person risk", f"{result.healthy_risk:.1f}%")
    if result.relative_risk is not None:
        print_item("Relative risk", f"{result.relative_risk:.1f}")
    for factor in result.contributing_factors:
        print(f"    - {factor.name} ({factor.impact.value})")
    for note in result.notes:
        print_warning(note)


def score_patient(data: dict, as_json: bool = False) -> int:
    """Validate and score one patient record. Returns a process exit code."""
    try:
        patient = PatientRiskInput.from_dict(data)
        combined = get_risk_engine().calculate_combined(patient)
    except RiskEngineError as e:
        print_error(str(e))
        return 1

    if as_json:
        print(json.dumps(combined.to_dict(), indent=2, ensure_ascii=False))
        return 0

    display_validation(patient)
    display_risk("FRAMINGHAM", combined.framingham)
    display_risk("QRISK3", combined.qrisk3)

    print_subheader("COMPARISON")
    print(f"  {combined.summary}")
    print_item("Suggested calculator", combined.suggested_calculator.value)
    print_item("Recommendation", combined.clinical_recommendation)
    print()
    return 0

# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    parser = argparse.ArgumentParser(
        description="CVD Risk Engine - Demo CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python demo_cli.py --sample              # Score sample patient
  python demo_cli.py --file patient.json   # Score a patient record
  python demo_cli.py --sample --json       # JSON output
"""
    )
    parser.add_argument('--file', '-f', help='Path to a JSON patient record')
    parser.add_argument('--sample', '-s', action='store_true', help='Use sample patient')
    parser.add_argument('--json', '-j', action='store_true', help='Print raw JSON result')

    args = parser.parse_args()
    logging.basicConfig(level=logging.WARNING)

    if args.sample:
        if not args.json:
            print_header("SCORING SAMPLE PATIENT")
        sys.exit(score_patient(SAMPLE_PATIENT, args.json))
    elif args.file:
        path = Path(args.file)
        if not path.exists():
            print(f"Error: File not found: {args.file}")
            sys.exit(1)

        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            print(f"Error: Invalid JSON in {args.file}: {e}")
            sys.exit(1)
        if not isinstance(data, dict):
            print(f"Error: {args.file} must contain a JSON object")
            sys.exit(1)

        if not args.json:
            print_header(f"SCORING: {path.name}")
        sys.exit(score_patient(data, args.json))
    else:
        parser.print_help()

if __name__ == "__main__":
    main()
