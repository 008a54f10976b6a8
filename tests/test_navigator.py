import pytest

from flowaudit.utils.navigator import NavigationActuator


@pytest.mark.asyncio
async def test_prefers_get_started_and_never_clicks_sign_up(driver_for):
    driver = driver_for("<a href='/signup'>Sign Up</a><button>Get Started</button>")
    navigator = NavigationActuator()
    for _ in range(3):
        result = await navigator.click_next(driver)
        assert result.outcome == "success"
        assert result.target == "Get Started"
    assert driver.clicks == ["Get Started"] * 3


@pytest.mark.asyncio
async def test_primary_call_to_action_beats_generic_next(driver_for):
    driver = driver_for("<button>Next</button><button>Get Started</button>")
    result = await NavigationActuator().click_next(driver)
    assert result.target == "Get Started"


@pytest.mark.asyncio
async def test_submit_input_matched_by_value(driver_for):
    driver = driver_for('<form><input name="email"><input type="submit" value="Submit answers"></form>')
    result = await NavigationActuator().click_next(driver)
    assert result.target == "Submit answers"


@pytest.mark.asyncio
async def test_hidden_and_disabled_controls_are_passed_over(driver_for):
    driver = driver_for(
        '<button style="display:none">Next</button>'
        "<button disabled>Continue</button>"
        "<button>Proceed</button>"
    )
    result = await NavigationActuator().click_next(driver)
    assert result.target == "Proceed"
    assert driver.clicks == ["Proceed"]


@pytest.mark.asyncio
async def test_exit_gate_text_disqualifies_a_matching_control(driver_for):
    driver = driver_for("<button>Continue to checkout</button>")
    result = await NavigationActuator().click_next(driver)
    assert result.outcome == "empty"
    assert driver.clicks == []


@pytest.mark.asyncio
async def test_structural_fallback(driver_for):
    driver = driver_for('<h1>Pick a size</h1><button class="btn-primary">&rarr;</button>')
    result = await NavigationActuator().click_next(driver)
    assert result.outcome == "success"
    assert result.target == "→"


@pytest.mark.asyncio
async def test_phrases_match_whole_words_only(driver_for):
    driver = driver_for("<button>Facebook</button><a>Restart</a>")
    result = await NavigationActuator().click_next(driver)
    assert result.outcome == "empty"


@pytest.mark.asyncio
async def test_click_that_navigates(driver_for):
    driver = driver_for('<button data-goto="https://flow.test/">Let\'s go</button>')
    result = await NavigationActuator().click_next(driver)
    assert result.succeeded
    assert driver.visits == ["https://flow.test/", "https://flow.test/"]
