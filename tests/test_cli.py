from bookstall import db
from bookstall.cli import SAMPLE_BOOKS
from bookstall.models import Book, User


def test_seed_is_repeatable(app):
    runner = app.test_cli_runner()
    first = runner.invoke(args=['seed'])
    second = runner.invoke(args=['seed'])

    assert first.exit_code == 0, first.output
    assert 'Created admin' in first.output
    assert '(0 new books)' in second.output
    with app.app_context():
        assert db.session.scalar(db.select(db.func.count()).select_from(Book)) == len(SAMPLE_BOOKS)
        assert db.session.scalar(db.select(User).filter_by(role='seller')).is_approved_seller()


def test_create_admin(app):
    result = app.test_cli_runner().invoke(args=['create-admin', '--email', 'root@example.com', '--password', 'rootpass'])
    assert result.exit_code == 0, result.output
    with app.app_context():
        assert db.session.scalar(db.select(User).filter_by(email='root@example.com')).is_admin()
