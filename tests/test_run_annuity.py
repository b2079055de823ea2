"""
tests/test_run_annuity.py - Command Line Runner Tests

Author: Annuity Valuation Project
License: MIT
"""

import json

from run_annuity import list_mortality_tables, run_annuity

from annuity_valuation import get_mortality_calculator, list_tables


class TestListTables:
    """--list-tables prints e(65) per table from the shared calculator."""

    def test_lists_every_table(self, capsys):
        assert list_mortality_tables() == list_tables()
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == len(list_tables()) + 1
        assert lines[1].split() == ["TGH05", "6.0", "6.7"]

    def test_matches_shared_calculator(self, capsys):
        list_mortality_tables()
        out = capsys.readouterr().out
        calculator = get_mortality_calculator()
        for table_id in list_tables():
            assert f"{calculator.life_expectancy(65, 'female', table_id):.1f}" in out


class TestRunAnnuity:
    """One valuation through the runner."""

    RECORD = {'age': 65, 'gender': 'male', 'interestRate': 2.5, 'annualAmount': 12000}

    def test_summary(self, capsys):
        outcome = run_annuity(dict(self.RECORD))
        assert outcome['result'].present_value == 61982
        assert outcome['history_record'] is None
        assert "61,982" in capsys.readouterr().out

    def test_json_output(self, capsys):
        run_annuity(dict(self.RECORD), json_output=True)
        payload = json.loads(capsys.readouterr().out)
        assert payload['data']['result']['presentValue'] == 61982

    def test_history_path(self, tmp_path, capsys):
        path = tmp_path / "history.json"
        outcome = run_annuity(dict(self.RECORD), history_path=str(path))
        assert outcome['history_record'] is not None
        assert path.exists()
