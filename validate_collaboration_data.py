#!/usr/bin/env python3
"""
Validation script for collaboration analysis output.
This script loads the latest JSON result written by the pipeline and checks it for consistency problems.
"""

import json
import os
from datetime import date

from process_collaboration_data import get_output_dir


def run_collaboration_validation_tests(data):
    """
    Run consistency checks on a serialized analysis result (the JSON written by the pipeline).
    Returns a list of validation errors found.
    """
    errors = []
    pairs = data.get('allPairs', [])

    # Check pair ordering and per-pair totals
    for pair in pairs:
        label = f"{pair['emp1']}-{pair['emp2']}"
        if pair['emp1'] >= pair['emp2']:
            errors.append(f"Pair {label} is not in (smaller, larger) order")

        detail_total = sum(project['overlapDays'] for project in pair['commonProjects'])
        if detail_total != pair['totalDays']:
            errors.append(f"Pair {label} total {pair['totalDays']} does not match project sum {detail_total}")

        for project in pair['commonProjects']:
            if project['overlapDays'] <= 0:
                errors.append(f"Pair {label} has a non-positive overlap on project {project['projectId']}")
            if date.fromisoformat(project['dateFrom']) > date.fromisoformat(project['dateTo']):
                errors.append(f"Pair {label} has an inverted overlap on project {project['projectId']}")

    # Check ranking
    totals = [pair['totalDays'] for pair in pairs]
    if totals != sorted(totals, reverse=True):
        errors.append("Pairs are not ranked by total days")

    # Check summary counts
    summary = data.get('summary', {})
    records = data.get('processedData', [])
    expected_counts = {
        'totalRecords': len(records),
        'uniqueEmployees': len({record['empId'] for record in records}),
        'uniqueProjects': len({record['projectId'] for record in records}),
        'employeePairs': len(pairs),
    }
    for name, expected in expected_counts.items():
        if summary.get(name) != expected:
            errors.append(f"Summary {name} is {summary.get(name)}, expected {expected}")

    return errors


def find_latest_result(output_dir):
    """Return the path of the newest collaboration_*.json file in output_dir, or None."""
    if not os.path.isdir(output_dir):
        return None
    result_files = [f for f in os.listdir(output_dir) if f.startswith('collaboration_') and f.endswith('.json')]
    if not result_files:
        return None
    # Timestamps in the names sort chronologically
    return os.path.join(output_dir, sorted(result_files)[-1])


def validate_latest_output(output_dir=None):
    """
    Validate the latest analysis output.
    Returns the list of validation errors, or None if there was nothing to validate.
    """
    if output_dir is None:
        output_dir = get_output_dir()

    latest = find_latest_result(output_dir)
    if latest is None:
        print(f"No analysis output found in: {output_dir}")
        return None

    print(f"Validating analysis output from: {latest}")

    try:
        with open(latest, 'r', encoding='utf-8') as handle:
            data = json.load(handle)
    except Exception as e:
        print(f"Error reading {latest}: {e}")
        return None

    # Run validation tests
    print("\nRunning validation tests...")
    errors = run_collaboration_validation_tests(data)

    if errors:
        print(f"\n❌ Found {len(errors)} validation errors:")
        for error in errors:
            print(f"  - {error}")
    else:
        print("\n✅ No validation errors found!")

    summary = data.get('summary', {})
    print("\n📊 Data Analysis:")
    print(f"  - {data.get('topPair')}")
    print(f"  - Total records: {summary.get('totalRecords')}")
    print(f"  - Unique employees: {summary.get('uniqueEmployees')}")
    print(f"  - Unique projects: {summary.get('uniqueProjects')}")
    print(f"  - Employee pairs: {summary.get('employeePairs')}")

    ongoing = [record for record in data.get('processedData', []) if record.get('dateTo') is None]
    if ongoing:
        print(f"  - Ongoing assignments (results depend on as-of {data.get('asOf')}): {len(ongoing)}")

    row_errors = data.get('errors', [])
    if row_errors:
        print(f"\n⚠️  {len(row_errors)} input rows were skipped during parsing:")
        for error in row_errors:
            print(f"    - {error}")

    if len(errors) == 0:
        print("\n🎉 All validation checks passed!")
    else:
        print("\n⚠️  Some validation issues found. Please review the data.")

    return errors


if __name__ == '__main__':
    validate_latest_output()
