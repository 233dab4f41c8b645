"""Tests for WealthMate.core.model: derived values, transforms and the JSON document."""
import dataclasses
import json
import unittest

from WealthMate.core import model


def sample_household() -> model.HouseholdFinances:
    alice = model.HouseholdMember(
        id='alice', name='Alice', salary=3000.0,
        outgoings=(model.Outgoing(id='o1', name='Phone', amount=30.0, category=model.OutgoingCategory.BILLS),),
        savings=(
            model.SavingsAccount(id='s1', name='Pot', balance=1000.0, account_type=model.AccountType.EASY_ACCESS),
            model.SavingsAccount(id='s2', name='Fixed', balance=4000.0, account_type=model.AccountType.FIXED_TERM),
        ),
    )
    bob = model.HouseholdMember(id='bob', name='Bob', salary=2500.0)
    return model.HouseholdFinances(
        id='home',
        members=(alice, bob),
        shared_outgoings=(model.Outgoing(id='o2', name='Food', amount=400.0, category=model.OutgoingCategory.GROCERIES),),
        shared_accounts=(
            model.SavingsAccount(id='s3', name='Bonds', balance=500.0, account_type=model.AccountType.PREMIUM_BONDS),
        ),
        investments=(
            model.Investment(id='i1', name='Global', contribution_amount=300.0, current_value=12000.0,
                             total_contributed=10000.0, frequency=model.InvestmentFrequency.MONTHLY),
            model.Investment(id='i2', name='Junior', contribution_amount=1200.0, current_value=2000.0,
                             total_contributed=2400.0, frequency=model.InvestmentFrequency.ANNUALLY,
                             account_type=model.AccountType.JUNIOR_ISA, is_for_kids=True),
        ),
        mortgage=model.MortgageInfo(property_value=400000.0, remaining_balance=250000.0, monthly_payment=1200.0,
                                    term_remaining_months=245),
        created_at=1,
        updated_at=1000,
    )


class DerivedValuesTest(unittest.TestCase):

    def setUp(self) -> None:
        self.household = sample_household()

    def test_income_and_outgoings(self):
        self.assertEqual(self.household.total_household_income, 5500.0)
        self.assertEqual(self.household.total_outgoings, 430.0)
        self.assertEqual(self.household.mortgage_payment, 1200.0)
        self.assertEqual(self.household.net_monthly_household, 5500.0 - 430.0 - 1200.0)

    def test_savings_split(self):
        self.assertEqual(len(self.household.all_savings), 3)
        self.assertEqual(self.household.total_savings, 5500.0)
        self.assertEqual(self.household.easy_access_savings, 1500.0)
        self.assertEqual(self.household.locked_savings, 4000.0)

    def test_investments(self):
        self.assertEqual(self.household.total_portfolio_value, 14000.0)
        self.assertEqual(self.household.total_invested, 12400.0)
        self.assertEqual(self.household.total_gain_loss, 1600.0)
        self.assertAlmostEqual(self.household.total_monthly_investments, 400.0)
        self.assertEqual([i.id for i in self.household.kids_investments], ['i2'])

        investment = self.household.investments[1]
        self.assertEqual(investment.gain_loss, -400.0)
        self.assertAlmostEqual(investment.gain_loss_percent, -400.0 / 2400.0 * 100.0)
        self.assertEqual(model.Investment().gain_loss_percent, 0.0)

    def test_mortgage(self):
        mortgage = self.household.mortgage
        self.assertEqual(mortgage.equity, 150000.0)
        self.assertAlmostEqual(mortgage.equity_percent, 37.5)
        self.assertEqual(mortgage.term_remaining_years, 20)
        self.assertEqual(mortgage.term_remaining_extra_months, 5)
        self.assertEqual(mortgage.annual_overpayment_allowance, 25000.0)

    def test_goal_progress_is_clamped(self):
        goal = model.SharedGoal(target_amount=100.0, current_amount=150.0)
        self.assertEqual(goal.progress_percent, 100.0)
        self.assertEqual(goal.remaining_amount, 0.0)
        self.assertEqual(model.SharedGoal().progress_percent, 0.0)

    def test_goal_contribution(self):
        alice = self.household.get_member('alice')
        goal = model.SharedGoal(target_amount=1000.0).contribute(alice, 250.0, date=42)
        self.assertEqual(goal.current_amount, 250.0)
        self.assertEqual(goal.contributions[0].member_name, 'Alice')
        self.assertEqual(goal.contributions[0].date, 42)
        self.assertEqual(goal.progress_percent, 25.0)

    def test_display_category(self):
        custom = model.Outgoing(category=model.OutgoingCategory.OTHER, custom_category='Pets')
        self.assertEqual(custom.display_category, 'Pets')
        self.assertEqual(model.SharedGoal(category=model.GoalCategory.EMERGENCY_FUND).display_category,
                         'Emergency Fund')


class TransformTest(unittest.TestCase):

    def setUp(self) -> None:
        self.household = sample_household()

    def test_with_member_appends_and_replaces(self):
        carol = model.HouseholdMember(id='carol', name='Carol')
        added = self.household.with_member(carol)
        self.assertEqual([m.id for m in added.members], ['alice', 'bob', 'carol'])

        renamed = added.with_member(dataclasses.replace(carol, name='Caroline'))
        self.assertEqual(len(renamed.members), 3)
        self.assertEqual(renamed.get_member('carol').name, 'Caroline')

        # The original snapshot is untouched
        self.assertEqual(len(self.household.members), 2)

    def test_without_member(self):
        self.assertIsNone(self.household.without_member('bob').get_member('bob'))

    def test_outgoing_on_member(self):
        outgoing = model.Outgoing(id='o3', name='Gym', amount=40.0)
        updated = self.household.with_outgoing(outgoing, member_id='bob')
        self.assertEqual(updated.get_member('bob').total_outgoings, 40.0)
        self.assertEqual(updated.without_outgoing('o3').get_member('bob').outgoings, ())

    def test_outgoing_on_unknown_member_raises(self):
        with self.assertRaises(KeyError):
            self.household.with_outgoing(model.Outgoing(), member_id='nobody')

    def test_account_removed_everywhere(self):
        updated = self.household.without_account('s1').without_account('s3')
        self.assertEqual([s.id for s in updated.all_savings], ['s2'])


class SerializationTest(unittest.TestCase):

    def test_keys_are_camel_case(self):
        data = json.loads(model.dumps(sample_household()))
        self.assertIn('updatedAt', data)
        self.assertIn('sharedGoals', data)
        self.assertIn('customOutgoingCategories', data)
        self.assertIn('contributionAmount', data['investments'][0])
        self.assertNotIn('updated_at', data)

    def test_all_fields_written(self):
        data = json.loads(model.dumps(model.HouseholdFinances()))
        expected = {model.to_camel(f.name) for f in dataclasses.fields(model.HouseholdFinances)}
        self.assertEqual(set(data), expected)
        self.assertIsNone(data['mortgage'])
        self.assertEqual(data['members'], [])

    def test_enums_written_by_value(self):
        data = json.loads(model.dumps(sample_household()))
        self.assertEqual(data['investments'][1]['frequency'], 'ANNUALLY')
        self.assertEqual(data['mortgage']['mortgageType'], 'REPAYMENT')

    def test_document_survives_reload(self):
        household = sample_household()
        self.assertEqual(model.loads(model.dumps(household)), household)

    def test_unknown_keys_ignored(self):
        text = json.dumps({
            'id': 'home',
            'name': 'Home',
            'updatedAt': 5,
            'someFutureField': {'nested': True},
            'members': [{'id': 'm', 'name': 'M', 'salary': 10, 'favouriteColour': 'blue'}],
        })
        household = model.loads(text)
        self.assertEqual(household.updated_at, 5)
        self.assertEqual(household.members[0].salary, 10.0)

    def test_missing_keys_use_defaults(self):
        household = model.loads('{}')
        self.assertEqual(household.name, model.DEFAULT_HOUSEHOLD_NAME)
        self.assertEqual(household.updated_at, 0)
        self.assertIsNone(household.mortgage)

    def test_unknown_enum_value_falls_back(self):
        text = json.dumps({
            'sharedOutgoings': [{'id': 'o', 'category': 'PETS'}],
            'mortgage': {'mortgageType': 'OFFSET'},
        })
        household = model.loads(text)
        self.assertEqual(household.shared_outgoings[0].category, model.OutgoingCategory.OTHER)
        self.assertEqual(household.mortgage.mortgage_type, model.MortgageType.REPAYMENT)

    def test_invalid_document_raises(self):
        with self.assertRaises(ValueError):
            model.loads('{not json')
        with self.assertRaises(TypeError):
            model.loads('[]')
        with self.assertRaises(TypeError):
            model.loads('{"members": "nope"}')
        with self.assertRaises(TypeError):
            model.loads('{"updatedAt": "yesterday"}')

    def test_non_finite_numbers_rejected(self):
        with self.assertRaises(TypeError):
            model.loads('{"updatedAt": 1e400}')
        with self.assertRaises(TypeError):
            model.loads('{"sharedAccounts": [{"balance": Infinity}]}')

    def test_deep_nesting_raises_value_error(self):
        depth = 100_000
        with self.assertRaises(ValueError):
            model.loads('{"x": ' + '[' * depth + ']' * depth + '}')


if __name__ == '__main__':
    unittest.main()
