import pandas as pd
import json
from datetime import datetime
import os
import sys
import platform

from assignment_parser import read_assignment_csv, parse_assignment_rows
from overlap_analysis import analyze_collaborations

# Sample batch: employees 143 and 218 across projects 10, 11 and 12
SAMPLE_CSV = """EmpID,ProjectID,DateFrom,DateTo
143,12,2013-11-01,2014-01-05
218,10,2012-05-16,NULL
218,10,2012-05-16,2012-09-05
143,10,2009-01-01,2011-04-27
143,11,2014-01-05,2014-11-09
218,12,2014-11-09,2015-01-05
143,10,2012-09-05,2013-11-01
218,11,2014-01-05,2014-11-09"""

SOURCE_FILE_ENV = "COLLAB_SOURCE_FILE"
OUTPUT_DIR_ENV = "COLLAB_OUTPUT_DIR"
DEFAULT_OUTPUT_DIR = "output"
ONGOING_LABEL = "Ongoing"


def get_source_file_path(argv=None):
    """
    Work out which CSV file to analyze.
    The first command line argument wins, then the COLLAB_SOURCE_FILE environment variable.
    Returns None when neither is set (use the sample batch) and False when the
    configured file cannot be used.
    """
    if argv is None:
        argv = sys.argv[1:]

    if argv:
        csv_file = argv[0]
    else:
        csv_file = os.environ.get(SOURCE_FILE_ENV)

    if not csv_file:
        print("No source file given. Using the built-in sample data.")
        return None

    # Check if the file exists
    if not os.path.exists(csv_file):
        print(f"Error: Source file not found at: {csv_file}")
        return False

    # Only CSV files are accepted
    if not csv_file.lower().endswith(".csv"):
        print(f"Error: Source file is not a .csv file: {csv_file}")
        return False

    # Check if the file is readable
    if not os.access(csv_file, os.R_OK):
        print(f"Error: Source file is not readable: {csv_file}")
        print("Please check file permissions")
        return False

    print(f"Using source file: {csv_file}")
    return csv_file


def get_output_dir():
    return os.environ.get(OUTPUT_DIR_ENV, DEFAULT_OUTPUT_DIR)


def write_sample_csv(path):
    """Write the sample batch to `path` so it can be used as a template."""
    with open(path, "w", encoding="utf-8", newline="") as handle:
        handle.write(SAMPLE_CSV + "\n")
    print(f"Sample CSV written to: {path}")
    return path


def load_assignment_rows(csv_file=None):
    """
    Read and tokenize the source CSV (or the sample batch when csv_file is None).
    Returns the list of row dicts, or None if the file cannot be read as a table.
    """
    try:
        if csv_file is None:
            csv_text = SAMPLE_CSV
        else:
            with open(csv_file, "r", encoding="utf-8") as handle:
                csv_text = handle.read()

        rows = read_assignment_csv(csv_text)
        print(f"Read {len(rows)} rows")
        return rows

    except Exception as e:
        print(f"Error reading CSV data: {str(e)}")
        return None


def print_parse_errors(errors):
    """Print the row-level problems found while parsing."""
    if not errors:
        return
    print(f"Warning: {len(errors)} rows were skipped:")
    for error in errors:
        print(f"  - {error}")


def _iso(value):
    return value.isoformat() if value is not None else None


def result_to_dict(result):
    """
    Render an AnalysisResult as plain JSON-ready data.
    Dates become ISO-8601 strings; an ongoing assignment has a null dateTo.
    """
    return {
        "topPair": result.top_pair,
        "allPairs": [
            {
                "emp1": pair.emp1,
                "emp2": pair.emp2,
                "totalDays": pair.total_days,
                "commonProjects": [
                    {
                        "projectId": project.project_id,
                        "overlapDays": project.overlap_days,
                        "dateFrom": _iso(project.date_from),
                        "dateTo": _iso(project.date_to),
                    }
                    for project in pair.common_projects
                ],
            }
            for pair in result.all_pairs
        ],
        "summary": {
            "totalRecords": result.summary.total_records,
            "uniqueEmployees": result.summary.unique_employees,
            "uniqueProjects": result.summary.unique_projects,
            "employeePairs": result.summary.employee_pairs,
        },
        "processedData": [
            {
                "empId": record.employee_id,
                "projectId": record.project_id,
                "dateFrom": _iso(record.start_date),
                "dateTo": _iso(record.end_date),
            }
            for record in result.processed_data
        ],
        "errors": list(result.errors),
        "asOf": result.as_of.isoformat(),
    }


def pairs_to_dataframe(result):
    """One row per employee pair, in ranked order."""
    rows = []
    for rank, pair in enumerate(result.all_pairs, start=1):
        rows.append({
            'Rank': rank,
            'Employee_1': pair.emp1,
            'Employee_2': pair.emp2,
            'Total_Days': pair.total_days,
            'Common_Projects': len(pair.common_projects),
        })
    return pd.DataFrame(rows, columns=['Rank', 'Employee_1', 'Employee_2', 'Total_Days', 'Common_Projects'])


def project_overlaps_to_dataframe(result):
    """One row per pair per shared project, with the clipped overlap dates."""
    rows = []
    for pair in result.all_pairs:
        for project in pair.common_projects:
            rows.append({
                'Employee_1': pair.emp1,
                'Employee_2': pair.emp2,
                'ProjectID': project.project_id,
                'Overlap_Days': project.overlap_days,
                'DateFrom': pd.Timestamp(project.date_from),
                'DateTo': pd.Timestamp(project.date_to),
            })
    return pd.DataFrame(rows, columns=['Employee_1', 'Employee_2', 'ProjectID', 'Overlap_Days', 'DateFrom', 'DateTo'])


def records_to_dataframe(result):
    """The validated input records. Ongoing assignments show 'Ongoing' as DateTo."""
    rows = []
    for record in result.processed_data:
        rows.append({
            'EmpID': record.employee_id,
            'ProjectID': record.project_id,
            'DateFrom': record.start_date.isoformat(),
            'DateTo': record.end_date.isoformat() if record.end_date is not None else ONGOING_LABEL,
        })
    return pd.DataFrame(rows, columns=['EmpID', 'ProjectID', 'DateFrom', 'DateTo'])


def create_output_files(result, output_dir, timestamp):
    """
    Write the analysis to a JSON file and an Excel workbook in output_dir.
    Returns the list of files written.
    """
    # Create output directory if it doesn't exist
    if not os.path.exists(output_dir):
        os.makedirs(output_dir)
        print(f"Created output directory: {output_dir}")

    written = []

    json_file = os.path.join(output_dir, f"collaboration_{timestamp}.json")
    with open(json_file, "w", encoding="utf-8") as handle:
        json.dump(result_to_dict(result), handle, indent=2)
    print(f"Successfully created JSON file: {json_file}")
    written.append(json_file)

    pairs_df = pairs_to_dataframe(result)
    projects_df = project_overlaps_to_dataframe(result)
    records_df = records_to_dataframe(result)

    output_excel_file = os.path.join(output_dir, f"collaboration_output_{timestamp}.xlsx")
    try:
        with pd.ExcelWriter(output_excel_file, engine='openpyxl', datetime_format='YYYY-MM-DD') as writer:
            pairs_df.to_excel(writer, sheet_name='PAIRS', index=False)
            projects_df.to_excel(writer, sheet_name='PROJECTS', index=False)
            records_df.to_excel(writer, sheet_name='RECORDS', index=False)
        print(f"Successfully created Excel file: {output_excel_file}")
        written.append(output_excel_file)
    except Exception as excel_error:
        print(f"Error writing Excel file: {str(excel_error)}")
        # Fallback: one CSV per sheet
        for name, df in (('pairs', pairs_df), ('projects', projects_df), ('records', records_df)):
            csv_file = os.path.join(output_dir, f"collaboration_{name}_{timestamp}.csv")
            df.to_csv(csv_file, index=False)
            print(f"Saved as CSV instead: {csv_file}")
            written.append(csv_file)

    return written


def print_result_summary(result):
    print(result.top_pair)
    print(f"  - Total records: {result.summary.total_records}")
    print(f"  - Unique employees: {result.summary.unique_employees}")
    print(f"  - Unique projects: {result.summary.unique_projects}")
    print(f"  - Employee pairs found: {result.summary.employee_pairs}")

    for pair in result.all_pairs[:10]:
        print(f"  Employees {pair.emp1} & {pair.emp2}: {pair.total_days} days")
        for project in pair.common_projects:
            print(f"    - Project {project.project_id}: {project.overlap_days} days "
                  f"({project.date_from.isoformat()} to {project.date_to.isoformat()})")


def process_collaboration_data(argv=None, as_of=None):
    """
    Main function that runs the whole analysis: read, parse, analyze, write.
    Returns the AnalysisResult, or None if the run had to stop.
    """
    csv_file = get_source_file_path(argv)
    if csv_file is False:
        print("ERROR: Could not use source file. Exiting.")
        return None

    output_dir = get_output_dir()

    # One timestamp for all output files of this run
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    print("=" * 60)
    print("EMPLOYEE COLLABORATION ANALYSIS")
    print(f"Running on: {platform.system()} {platform.release()}")
    print("=" * 60)

    # Step 1: Read the CSV into rows
    print("\nSTEP 1: Reading CSV data...")
    rows = load_assignment_rows(csv_file)
    if rows is None:
        print("ERROR: Failed to read CSV data. Exiting.")
        return None

    # Step 2: Validate rows into assignment records
    print("\nSTEP 2: Parsing assignment records...")
    records, errors = parse_assignment_rows(rows)
    print_parse_errors(errors)
    print(f"Parsed {len(records)} valid records")
    if not records:
        print("ERROR: No valid data found in CSV. Exiting.")
        return None

    # Step 3: Find overlapping pairs
    print("\nSTEP 3: Analyzing project overlaps...")
    result = analyze_collaborations(records, as_of=as_of, errors=errors)
    print_result_summary(result)

    # Step 4: Create output files
    print("\nSTEP 4: Creating output files...")
    create_output_files(result, output_dir, timestamp)

    print("=" * 60)
    print("PROCESSING COMPLETED SUCCESSFULLY!")
    print("=" * 60)
    return result


if __name__ == "__main__":
    process_collaboration_data()
