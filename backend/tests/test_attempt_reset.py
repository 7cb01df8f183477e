"""Administrative attempt resets and the certificates they invalidate."""

from pathlib import Path

import pytest

from training_portal.models import AdminLog, Attempt, Certificate
from training_portal.services.attempt_reset import reset_attempts
from training_portal.services.certificates import issue_certificate
from training_portal.services.errors import NotFoundError, ServiceError
from training_portal.services.progress_engine import ModuleStatus, compute_progress


@pytest.fixture
def certified_employee(db, employee, make_main_module, make_module, record_attempt):
    """Employee who completed three main modules and holds every certificate."""
    main_modules = [make_main_module(index) for index in (1, 2, 3)]
    modules = [
        make_module(index + 1, main_module=main_module, position=1)
        for index, main_module in enumerate(main_modules)
    ]
    for module in modules:
        record_attempt(employee, module, score=100)

    issue_certificate(db, employee)
    for main_module in main_modules:
        issue_certificate(db, employee, main_module.id)
    return employee, main_modules, modules


def certificate_scopes(db, user):
    db.expire_all()
    return sorted(
        record.main_module_id or 0
        for record in db.query(Certificate).filter(Certificate.user_id == user.id).all()
    )


class TestScopes:

    def test_single_module_reset(self, db, certified_employee, admin):
        employee, main_modules, modules = certified_employee
        paths = {record.main_module_id: record.file_path for record in db.query(Certificate).all()}

        result = reset_attempts(db, employee.id, module_id=modules[1].id, admin_id=admin.id)

        assert result.deleted_attempts == 1
        # Global plus main modules 2 and 3
        assert result.deleted_certificates == 3
        assert certificate_scopes(db, employee) == [main_modules[0].id]
        assert not Path(paths[None]).exists()
        assert not Path(paths[main_modules[2].id]).exists()
        assert Path(paths[main_modules[0].id]).exists()

        snapshot = compute_progress(db, employee.id)
        assert snapshot.find_module(modules[1].id).status == ModuleStatus.PENDING
        assert snapshot.find_module(modules[2].id).status == ModuleStatus.LOCKED

    def test_main_module_reset(self, db, certified_employee):
        employee, main_modules, modules = certified_employee

        result = reset_attempts(db, employee.id, main_module_id=main_modules[2].id)

        assert result.deleted_attempts == 1
        assert result.deleted_certificates == 2
        assert certificate_scopes(db, employee) == [main_modules[0].id, main_modules[1].id]

    def test_reset_everything(self, db, certified_employee, other_employee, record_attempt):
        employee, main_modules, modules = certified_employee
        record_attempt(other_employee, modules[0], score=100)

        result = reset_attempts(db, employee.id, reset_all=True)

        assert result.deleted_attempts == 3
        assert result.deleted_certificates == 4
        assert certificate_scopes(db, employee) == []
        assert db.query(Attempt).filter(Attempt.user_id == other_employee.id).count() == 1

    def test_failed_module_reopens(self, db, employee, make_module, record_attempt):
        module = make_module(1)
        record_attempt(employee, module, score=10)
        record_attempt(employee, module, score=20)

        reset_attempts(db, employee.id, module_id=module.id)

        item = compute_progress(db, employee.id).find_module(module.id)
        assert item.status == ModuleStatus.PENDING
        assert item.attempts_used == 0

    def test_admin_reset_is_audited(self, db, certified_employee, admin):
        employee, main_modules, modules = certified_employee
        reset_attempts(db, employee.id, reset_all=True, admin_id=admin.id)

        log = db.query(AdminLog).one()
        assert log.action == "reset_attempts"
        assert log.entity_id == employee.id
        assert log.details["deleted_attempts"] == 3


class TestValidation:

    @pytest.mark.parametrize("scope", [
        {},
        {"module_id": 1, "reset_all": True},
        {"module_id": 1, "main_module_id": 1},
    ])
    def test_exactly_one_scope(self, db, employee, scope):
        with pytest.raises(ServiceError) as exc_info:
            reset_attempts(db, employee.id, **scope)
        assert exc_info.value.status_code == 400

    def test_unknown_user(self, db):
        with pytest.raises(NotFoundError) as exc_info:
            reset_attempts(db, 999, reset_all=True)
        assert exc_info.value.reason == "User not found"

    def test_unknown_module(self, db, employee):
        with pytest.raises(NotFoundError) as exc_info:
            reset_attempts(db, employee.id, module_id=999)
        assert exc_info.value.reason == "Module not found"

    def test_unknown_main_module(self, db, employee):
        with pytest.raises(NotFoundError) as exc_info:
            reset_attempts(db, employee.id, main_module_id=999)
        assert exc_info.value.reason == "Main module not found"
