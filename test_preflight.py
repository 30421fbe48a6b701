"""
Tests for OS/hardware detection and the preflight verdicts.
"""
from dataclasses import replace

from zond_installer.config import Requirements
from zond_installer.preflight import (
    detect_environment,
    evaluate,
    read_os_release,
    read_total_ram_gb,
    run_preflight,
)
from zond_installer.prompts import LOW_STORAGE, ScriptedPrompter
from zond_installer.results import Outcome


def test_read_os_release_strips_quotes(tmp_path):
    path = tmp_path / 'os-release'
    path.write_text('PRETTY_NAME="Ubuntu 24.04.1 LTS"\nID=ubuntu\nVERSION_ID="24.04"\n# comment\n\n')
    values = read_os_release(path)
    assert values['ID'] == 'ubuntu'
    assert values['VERSION_ID'] == '24.04'
    assert values['PRETTY_NAME'] == 'Ubuntu 24.04.1 LTS'


def test_read_os_release_missing_file(tmp_path):
    assert read_os_release(tmp_path / 'missing') == {}


def test_read_total_ram_truncates(tmp_path):
    meminfo = tmp_path / 'meminfo'
    # 3.9 GiB
    meminfo.write_text('MemTotal:        4089446 kB\nMemFree:  1000 kB\n')
    assert read_total_ram_gb(meminfo) == 3


def test_read_total_ram_unparseable(tmp_path):
    meminfo = tmp_path / 'meminfo'
    meminfo.write_text('garbage\n')
    assert read_total_ram_gb(meminfo) == 0


def test_detect_environment(tmp_path, monkeypatch):
    os_release = tmp_path / 'os-release'
    os_release.write_text('ID=ubuntu\nVERSION_ID="24.04"\nPRETTY_NAME="Ubuntu 24.04 LTS"\n')
    meminfo = tmp_path / 'meminfo'
    meminfo.write_text('MemTotal: 8388608 kB\n')
    monkeypatch.setattr('zond_installer.preflight.os.cpu_count', lambda: 8)

    snapshot = detect_environment(os_release, meminfo, tmp_path)

    assert snapshot.os_id == 'ubuntu'
    assert snapshot.cpu_cores == 8
    assert snapshot.ram_gb == 8
    assert snapshot.free_disk_gb >= 0


def test_all_requirements_met_passes_without_prompt(good_snapshot):
    prompter = ScriptedPrompter()
    report = evaluate(good_snapshot, Requirements())

    result = run_preflight(report, prompter)

    assert result.ok
    assert prompter.asked == []


def test_exact_thresholds_pass(good_snapshot):
    snapshot = replace(good_snapshot, cpu_cores=2, ram_gb=2, free_disk_gb=50)
    report = evaluate(snapshot, Requirements())
    assert report.cpu_ok and report.ram_ok and report.storage_ok


def test_wrong_os_is_fatal(good_snapshot):
    snapshot = replace(good_snapshot, os_version='22.04', pretty_name='Ubuntu 22.04.4 LTS')
    prompter = ScriptedPrompter()

    result = run_preflight(evaluate(snapshot, Requirements()), prompter)

    assert result.outcome is Outcome.FATAL
    assert result.exit_code == 1
    assert 'Ubuntu 24.04 LTS' in result.message
    assert 'Ubuntu 22.04.4 LTS' in result.message
    assert prompter.asked == []


def test_wrong_distribution_is_fatal(good_snapshot):
    snapshot = replace(good_snapshot, os_id='debian')
    assert not evaluate(snapshot, Requirements()).os_ok


def test_low_cpu_is_fatal(good_snapshot):
    result = run_preflight(evaluate(replace(good_snapshot, cpu_cores=1), Requirements()), ScriptedPrompter())
    assert result.outcome is Outcome.FATAL
    assert 'CPU' in result.message


def test_low_ram_is_fatal(good_snapshot):
    result = run_preflight(evaluate(replace(good_snapshot, ram_gb=1), Requirements()), ScriptedPrompter())
    assert result.outcome is Outcome.FATAL
    assert 'RAM' in result.message


def test_low_storage_declined_by_default(good_snapshot):
    prompter = ScriptedPrompter()
    report = evaluate(replace(good_snapshot, free_disk_gb=20), Requirements())

    result = run_preflight(report, prompter)

    assert prompter.asked == [LOW_STORAGE]
    assert result.outcome is Outcome.DECLINED
    assert result.exit_code != 0


def test_low_storage_accepted_continues(good_snapshot):
    report = evaluate(replace(good_snapshot, free_disk_gb=20), Requirements())
    result = run_preflight(report, ScriptedPrompter({LOW_STORAGE: True}))
    assert result.ok


def test_low_storage_not_asked_when_hard_failure(good_snapshot):
    prompter = ScriptedPrompter()
    report = evaluate(replace(good_snapshot, free_disk_gb=20, cpu_cores=1), Requirements())

    result = run_preflight(report, prompter)

    assert result.outcome is Outcome.FATAL
    assert prompter.asked == []
