"""Flask CLI commands."""

from timebank.models import Employee


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        'users', 'create',
        '--name', 'Ana Lima',
        '--email', 'ana@corp.test',
        '--password', 'Secret123',
        '--role', 'manager',
        '--department', 'Ops',
    ])

    assert 'PASS Created employee' in result.output
    employee = Employee.query.filter_by(email='ana@corp.test').one()
    assert employee.work_schedule['friday'] == {'start_time': '09:00', 'end_time': '18:00'}
    assert employee.work_schedule['saturday'] is None

    listing = runner.invoke(args=['users', 'list', '--department', 'Ops'])
    assert 'ana@corp.test' in listing.output


def test_users_create_rejects_weak_password(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        'users', 'create', '--name', 'Weak', '--email', 'weak@corp.test', '--password', 'weak', '--role', 'employee',
    ])

    assert 'FAIL' in result.output
    assert Employee.query.count() == 0


def test_settings_show(app, db_session):
    result = app.test_cli_runner().invoke(args=['settings', 'show'])

    assert 'default_overtime_limit' in result.output
    assert '40.0' in result.output


def test_reset_requires_confirmation(app, db_session):
    result = app.test_cli_runner().invoke(args=['system', 'reset-db'])
    assert 'Refusing' in result.output
