"""Tests for StepLogger framing and levels."""

from __future__ import annotations

import logging

import pytest

from webapp.step_logger import STEP_LOGGER_NAME, VERBOSE, StepLogger


@pytest.fixture
def logger(caplog: pytest.LogCaptureFixture) -> StepLogger:
    caplog.set_level(VERBOSE, logger=STEP_LOGGER_NAME)
    return StepLogger('[web-application]')


def _messages(caplog: pytest.LogCaptureFixture) -> list[str]:
    return [r.getMessage() for r in caplog.records if r.name == STEP_LOGGER_NAME]


class TestSteps:
    def test_start_and_end(self, logger, caplog):
        logger.start_step('Click on (root.submit)')
        assert logger.open_steps == ('Click on (root.submit)',)
        logger.end_step('Click on (root.submit)')
        assert logger.open_steps == ()

        assert _messages(caplog) == [
            '[web-application] > Click on (root.submit)',
            '[web-application] < Click on (root.submit)',
        ]

    def test_nested_lines_are_indented(self, logger, caplog):
        logger.start_step('outer')
        logger.debug('inside')
        logger.end_step('outer')
        assert '[web-application]   inside' in _messages(caplog)

    def test_end_unknown_step_warns(self, logger, caplog):
        logger.end_step('never opened')
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert 'never opened' in warnings[0].getMessage()

    def test_end_closes_innermost_match(self, logger):
        logger.start_step('a')
        logger.start_step('b')
        logger.start_step('a')
        logger.end_step('a')
        assert logger.open_steps == ('a', 'b')

    @pytest.mark.asyncio
    async def test_step_success_runs_callback(self, logger, caplog):
        seen = []

        async def callback():
            seen.append(logger.open_steps)

        await logger.step_success('values match', callback)
        assert seen == [('values match',)]
        assert logger.open_steps == ()
        start = [r for r in caplog.records if '> values match' in r.getMessage()]
        assert start[0].levelno == logging.INFO

    @pytest.mark.asyncio
    async def test_step_error_closes_on_callback_failure(self, logger, caplog):
        async def callback():
            raise RuntimeError('screenshot failed')

        with pytest.raises(RuntimeError):
            await logger.step_error('values differ', callback)
        assert logger.open_steps == ()
        start = [r for r in caplog.records if '> values differ' in r.getMessage()]
        assert start[0].levelno == logging.ERROR


class TestLines:
    def test_levels(self, logger, caplog):
        logger.verbose('delay for %sms', 100)
        logger.debug('d')
        logger.info('i')
        logger.warning('w')
        logger.error('e')

        levels = [r.levelno for r in caplog.records]
        assert levels == [VERBOSE, logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR]
        assert caplog.records[0].getMessage() == '[web-application] delay for 100ms'
        assert logging.getLevelName(VERBOSE) == 'VERBOSE'

    def test_file(self, logger, caplog):
        logger.file('/tmp/shot.png', 'screenshot')
        assert _messages(caplog) == ['[web-application] [screenshot] /tmp/shot.png']

    def test_default_logger_name(self):
        assert StepLogger()._log.name == STEP_LOGGER_NAME
