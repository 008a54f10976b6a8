from unittest.mock import AsyncMock

import pytest

from flowaudit.detectors.blockers import BlockerClassifier
from flowaudit.detectors.end_of_flow import EndOfFlowClassifier
from flowaudit.models.types import BlockCategory


class TestBlockerClassifier:
    def test_two_factor_code(self):
        result = BlockerClassifier().classify_text("Please enter the 6-digit code we sent you")
        assert result.is_blocked
        assert result.category == BlockCategory.TWO_FACTOR
        assert "6-digit code" in result.reason

    def test_plain_page_is_not_blocked(self):
        result = BlockerClassifier().classify_text("How old are you?", "Quiz")
        assert not result.is_blocked
        assert result.category == BlockCategory.NONE

    def test_earlier_category_wins(self):
        result = BlockerClassifier().classify_text("Verify your email. Also solve this captcha.")
        assert result.category == BlockCategory.EMAIL_VERIFICATION

    def test_title_is_checked(self):
        result = BlockerClassifier().classify_text("", "Please sign in")
        assert result.category == BlockCategory.LOGIN_REQUIRED

    @pytest.mark.asyncio
    async def test_visible_captcha_widget_blocks(self, driver_for):
        driver = driver_for('<h1>Almost there</h1><div class="g-recaptcha"></div>')
        result = await BlockerClassifier().classify("Almost there", "Test Page", driver)
        assert result.is_blocked
        assert result.category == BlockCategory.VERIFICATION_INPUT

    @pytest.mark.asyncio
    async def test_hidden_otp_input_does_not_block(self, driver_for):
        driver = driver_for('<div hidden><input name="otp_code"></div><h1>Welcome</h1>')
        result = await BlockerClassifier().classify("Welcome", "Test Page", driver)
        assert not result.is_blocked

    @pytest.mark.asyncio
    async def test_probe_failure_fails_open(self):
        driver = AsyncMock()
        driver.query.side_effect = RuntimeError("Execution context was destroyed")
        result = await BlockerClassifier().classify("Welcome", "Home", driver)
        assert not result.is_blocked

    @pytest.mark.asyncio
    async def test_classify_does_not_touch_the_page(self, driver_for):
        driver = driver_for('<input autocomplete="one-time-code"><button>Verify</button>')
        await BlockerClassifier().classify("", "", driver)
        assert driver.clicks == []
        assert driver.fills == []


class TestEndOfFlowClassifier:
    @pytest.mark.asyncio
    async def test_thank_you_page_ends_flow(self, driver_for):
        driver = driver_for("<p>Thank you for completing the assessment</p>")
        classifier = EndOfFlowClassifier()
        assert await classifier.is_end_of_flow(driver) is True
        assert "thank you" in classifier.last_reason

    @pytest.mark.asyncio
    async def test_intermediate_page_does_not_end_flow(self, driver_for):
        driver = driver_for("<p>Please continue to step 2</p><button>Continue</button>")
        assert await EndOfFlowClassifier().is_end_of_flow(driver) is False

    @pytest.mark.asyncio
    async def test_visible_exit_gate_ends_flow(self, driver_for):
        driver = driver_for("<h1>Your plan</h1><a href='/signup'>Sign up</a>")
        classifier = EndOfFlowClassifier()
        assert await classifier.is_end_of_flow(driver) is True
        assert "Sign up" in classifier.last_reason

    @pytest.mark.asyncio
    async def test_hidden_exit_gate_is_ignored(self, driver_for):
        driver = driver_for("<h1>Question</h1><a style='display: none'>Log in</a><button>Next</button>")
        assert await EndOfFlowClassifier().is_end_of_flow(driver) is False

    @pytest.mark.asyncio
    async def test_script_source_is_not_page_text(self, driver_for):
        driver = driver_for(
            "<h1>Question 2</h1>"
            '<script>window.copy = {done: "Thank you for joining"};</script>'
            "<style>.confirmation { color: green; }</style>"
            "<button>Next</button>"
        )
        assert "Thank you" in await driver.text_content("body")
        assert await EndOfFlowClassifier().is_end_of_flow(driver) is False

    def test_terminal_phrase_is_case_insensitive(self):
        assert EndOfFlowClassifier().terminal_phrase("THANKS FOR signing up") == "thanks for"
        assert EndOfFlowClassifier().terminal_phrase("Question 3 of 10") is None
