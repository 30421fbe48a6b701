"""
Tests for install directory handling, source builds and binary verification.
"""
import os

from zond_installer import builder
from zond_installer.prompts import OVERWRITE_INSTALL_DIR
from zond_installer.results import Outcome


def test_prepare_creates_missing_root(make_context):
    ctx = make_context()
    assert builder.prepare_install_root(ctx).ok
    assert ctx.install_root.is_dir()
    assert ctx.prompter.asked == []


def test_existing_root_declined_is_untouched(make_context):
    ctx = make_context()
    ctx.install_root.mkdir()
    keep = ctx.install_root / 'keep.txt'
    keep.write_text('data')

    result = builder.prepare_install_root(ctx)

    assert result.outcome is Outcome.DECLINED
    assert result.exit_code == 0
    assert keep.read_text() == 'data'


def test_existing_root_accepted_is_wiped(make_context):
    ctx = make_context({OVERWRITE_INSTALL_DIR: True})
    ctx.install_root.mkdir()
    (ctx.install_root / 'stale').write_text('old')

    assert builder.prepare_install_root(ctx).ok
    assert ctx.install_root.is_dir()
    assert list(ctx.install_root.iterdir()) == []


def test_clone_and_build_produce_all_binaries(make_context, fake_runner):
    ctx = make_context()
    builder.prepare_install_root(ctx)

    assert builder.clone_sources(ctx).ok
    assert builder.build_binaries(ctx).ok

    assert fake_runner.commands[:2] == [
        'git clone --depth 1 https://github.com/theQRL/go-zond.git go-zond',
        'git clone --depth 1 https://github.com/theQRL/qrysm.git qrysm',
    ]
    assert 'make all' in fake_runner.commands
    assert 'go build -o=../beacon-chain ./cmd/beacon-chain' in fake_runner.commands
    assert builder.verify_artifacts(ctx.install_root) == []


def test_build_fails_when_repository_missing(make_context):
    ctx = make_context()
    builder.prepare_install_root(ctx)

    result = builder.build_binaries(ctx)

    assert result.outcome is Outcome.FATAL
    assert result.exit_code == 1
    assert 'go-zond' in result.message


def test_verify_artifacts_reports_missing_and_non_executable(tmp_path):
    for name in builder.BINARIES[:-1]:
        path = tmp_path / name
        path.write_text('')
        os.chmod(path, 0o755)
    os.chmod(tmp_path / 'gzond', 0o644)

    assert builder.verify_artifacts(tmp_path) == ['gzond', 'validator']


def test_check_artifacts_fails_with_missing_binaries(make_context):
    ctx = make_context()
    ctx.install_root.mkdir()
    result = builder.check_artifacts(ctx)
    assert result.outcome is Outcome.FATAL
    assert 'qrysmctl' in result.message
