from src.daycare_system.daycare_system.core.enums import ReportStatus, Role
from src.daycare_system.daycare_system.reports.factory import ReportLifecycleFactory
from src.daycare_system.daycare_system.reports.strategies.draft_strategy import DraftStrategy
from src.daycare_system.daycare_system.reports.strategies.staff_submit_strategy import StaffSubmitStrategy
from src.daycare_system.daycare_system.reports.strategies.submit_strategy import SubmitStrategy


def test_factory_save_without_submit_is_draft_for_everyone():
    factory = ReportLifecycleFactory()

    for role in (Role.ADMIN, Role.SECRETARY, Role.EDUCATOR):
        strategy = factory.for_save(actor_role=role, submit=False)
        assert isinstance(strategy, DraftStrategy)
        assert strategy.decide_save(actor_role=role, current=ReportStatus.REJECTED).status == ReportStatus.DRAFT


def test_factory_educator_submit_goes_pending():
    strategy = ReportLifecycleFactory().for_save(actor_role=Role.EDUCATOR, submit=True)

    decision = strategy.decide_save(actor_role=Role.EDUCATOR, current=None)

    assert isinstance(strategy, SubmitStrategy)
    assert decision.status == ReportStatus.PENDING
    assert decision.is_validated is False
    assert decision.stamp_validator is False


def test_factory_staff_submit_validates():
    strategy = ReportLifecycleFactory().for_save(actor_role=Role.SECRETARY, submit=True)

    decision = strategy.decide_save(actor_role=Role.SECRETARY, current=ReportStatus.DRAFT)

    assert isinstance(strategy, StaffSubmitStrategy)
    assert decision.status == ReportStatus.VALIDATED
    assert decision.is_validated is True
    assert decision.stamp_validator is True
