"""Tests for the codeprobe CLI."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from codeprobe.cli import cli, infer_language

CPP_MINIMAL = '#include<iostream>\nint main(){return 0;}\n'


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def offline_cli(offline_service):
    with patch('codeprobe.cli.get_service', return_value=offline_service):
        yield


@pytest.mark.parametrize('name, language', [
    ('calc.py', 'python'),
    ('app.JS', 'javascript'),
    ('types.ts', 'typescript'),
    ('Main.java', 'java'),
    ('Program.cs', 'csharp'),
    ('main.cpp', 'cpp'),
    ('hello.bf', 'bf'),
    ('Makefile', 'unknown'),
])
def test_infer_language(name, language):
    assert infer_language(Path(name)) == language


def test_run_prints_table_and_grade(runner, tmp_path):
    source = tmp_path / 'main.cpp'
    source.write_text(CPP_MINIMAL)

    result = runner.invoke(cli, ['run', str(source)])

    assert result.exit_code == 0, result.output
    assert 'C++ Syntax Check' in result.output
    assert 'All tests passed! (3/3)' in result.output
    assert 'Quality grade:' in result.output


def test_run_json(runner, tmp_path):
    source = tmp_path / 'main.cpp'
    source.write_text(CPP_MINIMAL)

    result = runner.invoke(cli, ['run', str(source), '--json'])

    assert result.exit_code == 0, result.output
    report = json.loads(result.output[result.output.index('{'):])
    assert report['totalTests'] == 3
    assert report['strategy'] == 'simulated:cpp'


def test_run_language_override(runner, tmp_path):
    source = tmp_path / 'program.txt'
    source.write_text('++++[>++<-]>.')

    result = runner.invoke(cli, ['run', str(source), '--language', 'brainfuck', '--role', 'tester'])

    assert result.exit_code == 0, result.output
    assert 'Unsupported Language' in result.output


def test_strict_exit_code(runner, tmp_path):
    source = tmp_path / 'main.cpp'
    source.write_text('int main() { return 0; }\n')

    result = runner.invoke(cli, ['run', str(source), '--strict'])

    assert result.exit_code == 1


def test_empty_file(runner, tmp_path):
    source = tmp_path / 'empty.py'
    source.write_text('   \n')

    result = runner.invoke(cli, ['run', str(source)])

    assert result.exit_code == 1


def test_languages(runner):
    result = runner.invoke(cli, ['languages'])
    assert result.exit_code == 0
    assert 'unknown' in result.output
    assert 'advisory' in result.output
