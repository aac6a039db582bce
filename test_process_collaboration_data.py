import unittest
import pandas as pd
from datetime import datetime
import tempfile
import json
import os
import sys
from unittest import mock

# Add the current directory to the path so we can import the main module
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from process_collaboration_data import (
    SAMPLE_CSV,
    SOURCE_FILE_ENV,
    OUTPUT_DIR_ENV,
    get_source_file_path,
    load_assignment_rows,
    write_sample_csv,
    result_to_dict,
    pairs_to_dataframe,
    project_overlaps_to_dataframe,
    records_to_dataframe,
    create_output_files,
    process_collaboration_data,
)
from overlap_analysis import analyze_assignment_rows
from validate_collaboration_data import (
    find_latest_result,
    run_collaboration_validation_tests,
    validate_latest_output,
)


AS_OF = datetime(2024, 6, 30)


class TestCollaborationPipeline(unittest.TestCase):
    """Test suite for the collaboration analysis pipeline."""

    def setUp(self):
        """Set up a scratch directory and the sample result before each test."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.sample_result = analyze_assignment_rows(load_assignment_rows(), as_of=AS_OF)

    def write_csv(self, name, text):
        path = os.path.join(self.temp_dir.name, name)
        with open(path, 'w', encoding='utf-8') as handle:
            handle.write(text)
        return path

    def test_source_file_from_argument(self):
        path = self.write_csv('data.csv', SAMPLE_CSV)
        self.assertEqual(get_source_file_path([path]), path)

    def test_source_file_from_environment(self):
        path = self.write_csv('data.csv', SAMPLE_CSV)
        with mock.patch.dict(os.environ, {SOURCE_FILE_ENV: path}):
            self.assertEqual(get_source_file_path([]), path)

    def test_no_source_file_means_sample(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertIsNone(get_source_file_path([]))

    def test_bad_source_files(self):
        missing = os.path.join(self.temp_dir.name, 'missing.csv')
        self.assertIs(get_source_file_path([missing]), False)

        not_csv = self.write_csv('data.txt', SAMPLE_CSV)
        self.assertIs(get_source_file_path([not_csv]), False)

    def test_load_sample_rows(self):
        rows = load_assignment_rows()
        self.assertEqual(len(rows), 8)
        self.assertEqual(rows[1], {'EmpID': '218', 'ProjectID': '10', 'DateFrom': '2012-05-16', 'DateTo': 'NULL'})

    def test_load_broken_file_returns_none(self):
        path = self.write_csv('broken.csv', "EmpID,ProjectID\n1,2\n3,4,5,6\n")
        self.assertIsNone(load_assignment_rows(path))

    def test_write_sample_csv_round_trips(self):
        path = write_sample_csv(os.path.join(self.temp_dir.name, 'sample.csv'))
        self.assertEqual(load_assignment_rows(path), load_assignment_rows())

    def test_result_to_dict(self):
        data = result_to_dict(self.sample_result)

        self.assertEqual(data['topPair'], "Employees 143 and 218 worked together for 733 days")
        self.assertEqual(data['summary'], {
            'totalRecords': 8,
            'uniqueEmployees': 2,
            'uniqueProjects': 3,
            'employeePairs': 1,
        })
        pair = data['allPairs'][0]
        self.assertEqual((pair['emp1'], pair['emp2'], pair['totalDays']), (143, 218, 733))
        self.assertEqual(pair['commonProjects'][0], {
            'projectId': 10,
            'overlapDays': 423,
            'dateFrom': '2012-09-05',
            'dateTo': '2013-11-01',
        })
        self.assertEqual(data['processedData'][1]['dateTo'], None)
        self.assertEqual(data['processedData'][0]['dateTo'], '2014-01-05')
        self.assertEqual(data['asOf'], '2024-06-30T00:00:00')

        # Must survive a JSON round trip unchanged
        self.assertEqual(json.loads(json.dumps(data)), data)

    def test_dataframes(self):
        pairs_df = pairs_to_dataframe(self.sample_result)
        self.assertEqual(pairs_df.iloc[0]['Total_Days'], 733)
        self.assertEqual(pairs_df.iloc[0]['Common_Projects'], 3)

        projects_df = project_overlaps_to_dataframe(self.sample_result)
        self.assertEqual(list(projects_df['ProjectID']), [10, 10, 11])
        self.assertEqual(projects_df['Overlap_Days'].sum(), 733)
        self.assertEqual(projects_df.iloc[2]['DateFrom'], pd.Timestamp('2014-01-05'))

        records_df = records_to_dataframe(self.sample_result)
        self.assertEqual(len(records_df), 8)
        self.assertEqual(records_df.iloc[1]['DateTo'], 'Ongoing')

    def test_dataframes_for_empty_result(self):
        empty = analyze_assignment_rows([], as_of=AS_OF)
        self.assertEqual(len(pairs_to_dataframe(empty)), 0)
        self.assertIn('Total_Days', pairs_to_dataframe(empty).columns)
        self.assertEqual(len(project_overlaps_to_dataframe(empty)), 0)

    def test_create_output_files(self):
        output_dir = os.path.join(self.temp_dir.name, 'output')
        written = create_output_files(self.sample_result, output_dir, '20240630_120000')

        json_file = os.path.join(output_dir, 'collaboration_20240630_120000.json')
        self.assertIn(json_file, written)
        with open(json_file, encoding='utf-8') as handle:
            data = json.load(handle)
        self.assertEqual(run_collaboration_validation_tests(data), [])

        excel_file = os.path.join(output_dir, 'collaboration_output_20240630_120000.xlsx')
        self.assertIn(excel_file, written)
        pairs_df = pd.read_excel(excel_file, sheet_name='PAIRS')
        self.assertEqual(int(pairs_df.iloc[0]['Total_Days']), 733)

    def test_validate_latest_output(self):
        output_dir = os.path.join(self.temp_dir.name, 'output')
        self.assertIsNone(validate_latest_output(output_dir))

        create_output_files(self.sample_result, output_dir, '20240101_000000')
        create_output_files(self.sample_result, output_dir, '20240630_120000')
        self.assertEqual(find_latest_result(output_dir),
                         os.path.join(output_dir, 'collaboration_20240630_120000.json'))
        self.assertEqual(validate_latest_output(output_dir), [])

    def test_full_pipeline_on_sample(self):
        output_dir = os.path.join(self.temp_dir.name, 'out')
        with mock.patch.dict(os.environ, {OUTPUT_DIR_ENV: output_dir}, clear=True):
            result = process_collaboration_data([], as_of=AS_OF)
        self.assertEqual(result, self.sample_result)
        self.assertTrue(any(name.endswith('.json') for name in os.listdir(output_dir)))

    def test_pipeline_stops_when_no_valid_rows(self):
        path = self.write_csv('bad.csv', "EmpID,ProjectID,DateFrom,DateTo\nx,1,2020-01-01,NULL\n1,1,garbage,NULL\n")
        output_dir = os.path.join(self.temp_dir.name, 'out')
        with mock.patch.dict(os.environ, {OUTPUT_DIR_ENV: output_dir}):
            self.assertIsNone(process_collaboration_data([path], as_of=AS_OF))
        self.assertFalse(os.path.exists(output_dir))

    def test_pipeline_keeps_row_errors(self):
        path = self.write_csv('mixed.csv', SAMPLE_CSV + "\nabc,10,2012-01-01,NULL\n")
        output_dir = os.path.join(self.temp_dir.name, 'out')
        with mock.patch.dict(os.environ, {OUTPUT_DIR_ENV: output_dir}):
            result = process_collaboration_data([path], as_of=AS_OF)
        self.assertEqual(result.errors, ("Row 9: Invalid employee ID or project ID",))
        self.assertEqual(result.all_pairs[0].total_days, 733)

    def test_validation_catches_bad_totals(self):
        data = result_to_dict(self.sample_result)
        data['allPairs'][0]['totalDays'] += 1
        errors = run_collaboration_validation_tests(data)
        self.assertEqual(len(errors), 1)
        self.assertIn('143-218', errors[0])


if __name__ == '__main__':
    # Run the tests
    unittest.main(verbosity=2)
