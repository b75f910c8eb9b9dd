import nox

PYTHON_VERSION = "3.11"
SOURCE_DIRS = ["api", "common", "packages", "workers", "tests"]


def _install(session):
    session.run("poetry", "install", "--all-extras", external=True)


@nox.session(python=PYTHON_VERSION)
def tests(session):
    _install(session)
    session.run("poetry", "run", "pytest", "tests/unit", *session.posargs, external=True)


@nox.session(python=PYTHON_VERSION)
def lint(session):
    _install(session)
    session.run("poetry", "run", "ruff", "check", *SOURCE_DIRS, external=True)


@nox.session(python=PYTHON_VERSION)
def format(session):
    _install(session)
    session.run("poetry", "run", "black", "--check", *SOURCE_DIRS, external=True)
    session.run("poetry", "run", "ruff", "check", *SOURCE_DIRS, external=True)
