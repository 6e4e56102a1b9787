from datetime import date

from money_board.ledger import (
    MoneyLedger,
    compute_totals,
    distribute_allocation,
    recompute_saved,
)
from money_board.models import Bucket, Entry, LedgerState


class FakeStorage:
    def __init__(self, payload=None, fail=False):
        self.payload = payload
        self.saves = []
        self.fail = fail

    def load(self):
        return self.payload

    def save(self, payload):
        if self.fail:
            raise OSError("disk full")
        self.saves.append(payload)


class Clock:
    def __init__(self, iso):
        self.today = date.fromisoformat(iso)

    def __call__(self):
        return self.today


def _ledger(*buckets, today='2026-01-05', storage=None, entries=(), last='2026-01'):
    state = LedgerState(buckets=list(buckets), entries=list(entries), last_monthly_applied=last)
    return MoneyLedger(state, storage=storage, clock=Clock(today))


def _assert_saved_invariant(ledger):
    for bucket in ledger.buckets:
        expected = sum(entry.allocations.get(bucket.key, 0.0) for entry in ledger.entries)
        assert round(bucket.saved, 2) == round(expected, 2), bucket.key
    for entry in ledger.entries:
        assert sum(entry.allocations.values()) <= entry.amount + 1e-9


def test_basic_funding():
    ledger = _ledger(Bucket(key='rent', name='Rent', target=500.0))
    assert ledger.add_income('2026-01-01', 'Other', 500)
    assert ledger.allocate('rent', 500)

    assert ledger.totals().unassigned == 0
    rent = ledger.bucket('rent')
    assert rent.saved == 500
    assert rent.remaining == 0


def test_allocation_fills_entries_in_list_order():
    ledger = _ledger(Bucket(key='bills', name='Bills', target=300.0))
    ledger.add_income('2026-01-01', 'Salon', 100)
    ledger.add_income('2026-01-02', 'DoorDash', 100)
    assert ledger.totals().unassigned == 200

    assert ledger.allocate('bills', 150)

    first, second = ledger.entries
    assert first.date == '2026-01-02'
    assert first.allocations == {'bills': 100.0}
    assert second.allocations == {'bills': 50.0}
    assert ledger.bucket('bills').saved == 150
    assert ledger.totals().unassigned == 50
    _assert_saved_invariant(ledger)


def test_over_allocation_is_rejected_without_changes():
    ledger = _ledger(Bucket(key='bills', name='Bills', target=300.0))
    ledger.add_income('2026-01-01', 'Other', 50)
    before = ledger.state

    assert not ledger.allocate('bills', 100)

    assert ledger.state == before
    assert ledger.bucket('bills').saved == 0
    assert ledger.totals().unassigned == 50


def test_invalid_allocations_are_rejected():
    ledger = _ledger(Bucket(key='bills', name='Bills', target=300.0))
    ledger.add_income('2026-01-01', 'Other', 50)
    before = ledger.state

    assert not ledger.allocate('bills', 0)
    assert not ledger.allocate('bills', -10)
    assert not ledger.allocate('bills', float('nan'))
    assert not ledger.allocate('missing', 10)
    assert ledger.state == before


def test_allocation_decreases_unassigned_by_exact_amount():
    ledger = _ledger(Bucket(key='a', name='A', target=100.0), Bucket(key='b', name='B', target=100.0))
    ledger.add_income('2026-01-01', 'Other', 33.33)
    ledger.add_income('2026-01-02', 'Other', 66.67)
    ledger.allocate('a', 40.01)
    before = ledger.totals().unassigned

    assert ledger.allocate('b', 20.5)

    assert round(before - ledger.totals().unassigned, 2) == 20.5
    assert ledger.bucket('b').saved == 20.5
    _assert_saved_invariant(ledger)


def test_add_income_rejects_non_positive_amounts():
    ledger = _ledger()
    for amount in (0, -5, float('nan'), 'abc', 0.001):
        assert not ledger.add_income('2026-01-01', 'Other', amount)
    assert ledger.entries == []


def test_add_income_orders_newest_first_and_new_entries_lead_ties():
    ledger = _ledger()
    ledger.add_income('2026-01-01', 'Salon', 10, note='a')
    ledger.add_income('2026-01-03', 'Salon', 20, note='b')
    ledger.add_income('2026-01-01', 'DoorDash', 30, note='c')

    assert [e.note for e in ledger.entries] == ['b', 'c', 'a']
    assert all(e.allocations == {} for e in ledger.entries)


def test_add_income_normalizes_source_and_note():
    ledger = _ledger()
    ledger.add_income('2026-01-01', 'doordash', 12.345, note='   ')
    entry = ledger.entries[0]
    assert entry.source == 'DoorDash'
    assert entry.amount == 12.35
    assert entry.note is None

    ledger.add_income('2026-01-01', 'Lottery', 5)
    assert ledger.entries[0].source == 'Other'


def test_debt_allocation_pays_down_balance_and_floors_at_zero():
    card = Bucket(key='card', name='Card', target=50.0, kind='credit', balance=300.0)
    ledger = _ledger(card)
    ledger.add_income('2026-01-01', 'Other', 500)

    ledger.allocate('card', 50)
    assert ledger.bucket('card').balance == 250

    ledger.allocate('card', 400)
    card = ledger.bucket('card')
    assert card.balance == 0
    assert card.saved == 450
    assert card.remaining == 0


def test_bill_allocation_leaves_balance_alone():
    ledger = _ledger(Bucket(key='power', name='Power', target=100.0, kind='bill', balance=80.0))
    ledger.add_income('2026-01-01', 'Other', 100)
    ledger.allocate('power', 60)
    assert ledger.bucket('power').balance == 80


def test_auto_fund_orders_focus_then_priority():
    ledger = _ledger(
        Bucket(key='later', name='Later', target=100.0, priority=1, focus=False),
        Bucket(key='focus2', name='Focus 2', target=100.0, priority=2, focus=True),
        Bucket(key='focus1', name='Focus 1', target=50.0, priority=1, focus=True),
    )
    ledger.add_income('2026-01-01', 'Other', 180)

    assert ledger.auto_fund_essentials()

    assert ledger.bucket('focus1').saved == 50
    assert ledger.bucket('focus2').saved == 100
    assert ledger.bucket('later').saved == 30
    assert ledger.totals().unassigned == 0
    _assert_saved_invariant(ledger)


def test_auto_fund_leaves_money_when_targets_are_met():
    ledger = _ledger(Bucket(key='rent', name='Rent', target=100.0))
    ledger.add_income('2026-01-01', 'Other', 250)

    assert ledger.auto_fund_essentials()
    assert ledger.totals().unassigned == 150
    assert not ledger.auto_fund_essentials()


def test_add_bucket_disambiguates_keys():
    ledger = _ledger(Bucket(key='rent', name='Rent', target=100.0))
    assert ledger.add_bucket('Rent', target=200) == 'rent-2'
    assert ledger.buckets[0].key == 'rent-2'
    assert ledger.add_bucket('   ') is None


def test_add_bucket_never_inherits_orphaned_allocations():
    ledger = _ledger()
    key = ledger.add_bucket('Gym', target=30)
    ledger.add_income('2026-01-01', 'Other', 30)
    ledger.allocate(key, 30)
    ledger.remove_bucket(key)

    new_key = ledger.add_bucket('Gym', target=30)
    assert new_key == 'gym-2'
    assert ledger.bucket(new_key).saved == 0


def test_add_bucket_clamps_and_ignores_saved():
    ledger = _ledger()
    key = ledger.add_bucket('Loan', target=-20, saved=999, kind='LOAN', balance=-4, priority=9, apr=19.999)
    loan = ledger.bucket(key)
    assert loan.target == 0
    assert loan.saved == 0
    assert loan.kind == 'loan'
    assert loan.balance == 0
    assert loan.priority == 3
    assert loan.apr == 20.0


def test_add_monthly_bucket_snaps_immediately():
    ledger = _ledger(today='2026-02-20', last='2026-02')
    key = ledger.add_bucket('Phone', target=40, is_monthly=True, due_day=18)
    phone = ledger.bucket(key)
    assert phone.due_date == '2026-03-18'
    assert phone.monthly_target == 40
    assert phone.target == 40


def test_update_bucket_clamps_and_protects_saved():
    ledger = _ledger(Bucket(key='rent', name='Rent', target=100.0))
    ledger.add_income('2026-01-01', 'Other', 100)
    ledger.allocate('rent', 60)

    assert ledger.update_bucket('rent', {'saved': 0, 'target': -5, 'due_day': 45, 'focus': 'yes'})
    rent = ledger.bucket('rent')
    assert rent.saved == 60
    assert rent.target == 0
    assert rent.due_day == 31
    assert rent.focus is True
    _assert_saved_invariant(ledger)


def test_update_bucket_accepts_persisted_field_names():
    ledger = _ledger(Bucket(key='card', name='Card', target=25.0, kind='credit'))
    assert ledger.update_bucket('card', {'minPayment': 25.555, 'creditLimit': 500, 'dueDate': '2026-01-20'})
    card = ledger.bucket('card')
    assert card.min_payment == 25.56
    assert card.credit_limit == 500
    assert card.due_date == '2026-01-20'


def test_update_bucket_toggled_monthly_snaps_now():
    ledger = _ledger(Bucket(key='gym', name='Gym', target=30.0), today='2026-02-10', last='2026-02')
    assert ledger.update_bucket('gym', {'is_monthly': True, 'due_day': 18, 'monthly_target': 35})
    gym = ledger.bucket('gym')
    assert gym.due_date == '2026-02-18'
    assert gym.target == 35


def test_update_unknown_or_noop_returns_false():
    ledger = _ledger(Bucket(key='rent', name='Rent', target=100.0))
    assert not ledger.update_bucket('nope', {'target': 5})
    assert not ledger.update_bucket('rent', {'target': 100})
    assert not ledger.update_bucket('rent', {'balance': None})


def test_remove_bucket_keeps_allocated_money_allocated():
    ledger = _ledger(Bucket(key='rent', name='Rent', target=100.0))
    ledger.add_income('2026-01-01', 'Other', 100)
    ledger.allocate('rent', 70)

    assert ledger.remove_bucket('rent')
    assert not ledger.remove_bucket('rent')

    totals = ledger.totals()
    assert totals.allocated == 70
    assert totals.unassigned == 30
    assert ledger.entries[0].allocations == {'rent': 70.0}


def test_reset_all_restores_default_buckets():
    ledger = _ledger(Bucket(key='custom', name='Custom', target=10.0), today='2026-02-20', last='2026-02')
    ledger.add_income('2026-02-01', 'Other', 10)
    ledger.allocate('custom', 10)

    ledger.reset_all()

    assert ledger.entries == []
    keys = [b.key for b in ledger.buckets]
    assert 'car' in keys and 'custom' not in keys
    assert all(b.saved == 0 for b in ledger.buckets)
    assert ledger.bucket('acct0928').due_date == '2026-03-06'
    assert ledger.totals().income == 0


def test_reset_all_can_keep_buckets():
    ledger = _ledger(Bucket(key='custom', name='Custom', target=10.0))
    ledger.add_income('2026-01-01', 'Other', 10)
    ledger.allocate('custom', 10)

    ledger.reset_all(keep_buckets=True)

    assert [b.key for b in ledger.buckets] == ['custom']
    assert ledger.bucket('custom').saved == 0
    assert ledger.entries == []


def test_tick_runs_once_per_month():
    clock = Clock('2026-02-20')
    bucket = Bucket(key='card', name='Card', target=0.0, is_monthly=True, monthly_target=52.0, due_day=18)
    storage = FakeStorage()
    ledger = MoneyLedger(LedgerState([bucket], [], '2026-01'), storage=storage, clock=clock)

    assert ledger.tick()
    assert ledger.last_monthly_applied == '2026-02'
    assert ledger.bucket('card').due_date == '2026-03-18'
    assert ledger.bucket('card').target == 52
    assert len(storage.saves) == 1

    assert not ledger.tick()
    assert len(storage.saves) == 1

    clock.today = date(2026, 3, 19)
    assert ledger.tick()
    assert ledger.last_monthly_applied == '2026-03'
    assert ledger.bucket('card').due_date == '2026-04-18'


def test_every_successful_command_is_saved():
    storage = FakeStorage()
    ledger = _ledger(Bucket(key='rent', name='Rent', target=100.0), storage=storage)

    ledger.add_income('2026-01-01', 'Other', 100)
    ledger.allocate('rent', 40)
    ledger.allocate('rent', 400)
    ledger.add_income('2026-01-01', 'Other', 0)

    assert len(storage.saves) == 2
    assert storage.saves[-1]['meta'] == {'lastMonthlyApplied': '2026-01'}
    assert storage.saves[-1]['buckets'][0]['saved'] == 40


def test_save_failure_keeps_in_memory_state():
    ledger = _ledger(storage=FakeStorage(fail=True))
    assert ledger.add_income('2026-01-01', 'Other', 25)
    assert ledger.totals().income == 25


def test_from_payload_falls_back_to_defaults():
    storage = FakeStorage()
    ledger = MoneyLedger.from_payload('{not json', storage=storage, clock=Clock('2026-02-20'))
    assert ledger.bucket('car') is not None
    assert ledger.entries == []

    fresh = MoneyLedger.load(storage, clock=Clock('2026-02-20'))
    assert fresh.last_monthly_applied == '2026-02'
    assert storage.saves, "a fresh ledger is saved right away"


def test_from_payload_recomputes_saved_and_runs_recurrence():
    payload = {
        'buckets': [
            {'key': 'rent', 'name': 'Rent', 'target': 100, 'saved': 999},
            {'key': 'card', 'name': 'Card', 'target': 1, 'isMonthly': True, 'monthlyTarget': 40, 'dueDay': 18},
        ],
        'entries': [
            {'id': 'e1', 'dateISO': '2026-01-10', 'source': 'Salon', 'amount': 100, 'allocations': {'rent': 30}},
        ],
        'meta': {'lastMonthlyApplied': '2026-01'},
    }
    storage = FakeStorage(payload)
    ledger = MoneyLedger.load(storage, clock=Clock('2026-02-20'))

    assert ledger.bucket('rent').saved == 30
    assert ledger.bucket('card').due_date == '2026-03-18'
    assert ledger.bucket('card').target == 40
    assert ledger.last_monthly_applied == '2026-02'
    assert storage.saves[-1]['meta']['lastMonthlyApplied'] == '2026-02'


def test_import_state_replaces_everything():
    ledger = _ledger(Bucket(key='old', name='Old', target=5.0))
    state = LedgerState(
        buckets=[Bucket(key='new', name='New', target=50.0)],
        entries=[Entry(id='x', date='2026-01-02', source='Other', amount=20.0, allocations={'new': 20.0})],
        last_monthly_applied='2026-01',
    )
    ledger.import_state(state)
    assert [b.key for b in ledger.buckets] == ['new']
    assert ledger.bucket('new').saved == 20


def test_pure_helpers():
    entries = [
        Entry(id='1', date='2026-01-02', source='Other', amount=100.0, allocations={'a': 60.0}),
        Entry(id='2', date='2026-01-01', source='Other', amount=50.0, allocations={'a': 10.0, 'b': 5.0}),
    ]
    assert recompute_saved(entries) == {'a': 70.0, 'b': 5.0}
    totals = compute_totals(entries)
    assert (totals.income, totals.allocated, totals.unassigned) == (150.0, 75.0, 75.0)

    placed = distribute_allocation(entries, 'b', 60)
    assert placed[0].allocations == {'a': 60.0, 'b': 40.0}
    assert placed[1].allocations == {'a': 10.0, 'b': 25.0}
    assert entries[0].allocations == {'a': 60.0}, "input entries must not be modified"
    assert distribute_allocation(entries, 'b', 76) is None


def test_apply_recurrence_snaps_without_touching_month_key():
    storage = FakeStorage()
    clock = Clock('2026-02-10')
    phone = Bucket(key='phone', name='Phone', target=5.0, is_monthly=True, monthly_target=40.0,
                   due_day=18, due_date='2026-01-18')
    rent = Bucket(key='rent', name='Rent', target=100.0, due_date='2026-02-01')
    ledger = MoneyLedger(LedgerState([phone, rent], [], '2026-01'), storage=storage, clock=clock)

    ledger.apply_recurrence()

    assert ledger.bucket('phone').due_date == '2026-02-18'
    assert ledger.bucket('phone').target == 40
    assert ledger.bucket('rent') == rent
    assert ledger.last_monthly_applied == '2026-01'
    assert storage.saves[-1]['meta'] == {'lastMonthlyApplied': '2026-01'}


def test_planner_helpers_accept_zero_horizon():
    ledger = _ledger(
        Bucket(key='today', name='Today', target=30.0, due_date='2026-01-05'),
        Bucket(key='soon', name='Soon', target=20.0, due_date='2026-01-06'),
    )

    assert [n.key for n in ledger.daily_need(0)] == ['today']
    assert [n.key for n in ledger.daily_need()] == ['today', 'soon']
    assert ledger.weekly_need(0).weeks == []
    assert len(ledger.weekly_need().weeks) == 4
    assert ledger.carryover_forecast(weeks=0).rows == []
    assert len(ledger.carryover_forecast().rows) == 13
