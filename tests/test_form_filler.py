import pytest

from flowaudit.utils.form_filler import FormAutofiller, infer_value, match_dictionary
from flowaudit.utils.test_data import DEFAULT_TEST_DATA, merge_test_data


async def value_of(driver, selector):
    return await driver.input_value((await driver.query(selector))[0])


@pytest.mark.asyncio
async def test_fills_empty_email_and_leaves_existing_value(driver_for):
    driver = driver_for(
        '<input name="email" type="email">'
        '<input name="work_email" value="foo@bar.com">'
    )
    result = await FormAutofiller().fill(driver)

    assert result.outcome == "success"
    assert result.count == 1
    assert await value_of(driver, 'input[name="email"]') == DEFAULT_TEST_DATA["email"]
    assert await value_of(driver, 'input[name="work_email"]') == "foo@bar.com"


@pytest.mark.asyncio
async def test_second_pass_is_a_no_op(driver_for):
    driver = driver_for('<input name="email"><input name="zipCode">')
    filler = FormAutofiller()
    assert (await filler.fill(driver)).count == 2
    again = await filler.fill(driver)
    assert again.outcome == "empty"
    assert again.count == 0
    assert len(driver.fills) == 2


@pytest.mark.asyncio
async def test_overrides_win(driver_for):
    driver = driver_for('<input name="email">')
    await FormAutofiller().fill(driver, {"email": "qa@corp.test"})
    assert await value_of(driver, 'input[name="email"]') == "qa@corp.test"


@pytest.mark.asyncio
async def test_select_picks_second_option(driver_for):
    driver = driver_for(
        '<select name="plan"><option value="">Choose one</option>'
        '<option value="basic">Basic</option><option value="pro">Pro</option></select>'
    )
    result = await FormAutofiller().fill(driver)
    assert result.count == 1
    assert await value_of(driver, "select") == "basic"


@pytest.mark.asyncio
async def test_skips_hidden_choice_and_invisible_fields(driver_for):
    driver = driver_for(
        '<input type="hidden" name="email">'
        '<input type="checkbox" name="email_opt_in">'
        '<input type="radio" name="name">'
        '<input type="submit" value="Send">'
        '<div style="display:none"><input name="phone"></div>'
    )
    result = await FormAutofiller().fill(driver)
    assert result.outcome == "empty"
    assert driver.fills == []


@pytest.mark.asyncio
async def test_type_inference_when_no_key_matches(driver_for):
    driver = driver_for('<input type="tel" name="contact_no"><input type="date" name="bday_field">')
    await FormAutofiller().fill(driver)
    assert await value_of(driver, 'input[name="contact_no"]') == DEFAULT_TEST_DATA["phone"]
    assert await value_of(driver, 'input[name="bday_field"]') == DEFAULT_TEST_DATA["dateOfBirth"]


@pytest.mark.asyncio
async def test_one_broken_field_does_not_stop_the_rest(driver_for):
    driver = driver_for('<input name="email" data-fail><input name="city">')
    result = await FormAutofiller().fill(driver)
    assert result.count == 1
    assert driver.fills == [("city", "Los Angeles")]


@pytest.mark.asyncio
async def test_unidentifiable_field_is_left_alone(driver_for):
    driver = driver_for('<input type="text">')
    result = await FormAutofiller().fill(driver)
    assert result.outcome == "empty"


def test_dictionary_match_works_in_both_directions():
    data = merge_test_data()
    assert match_dictionary("customer_email_address", data) == data["email"]
    assert match_dictionary("mail", data) == data["email"]
    assert match_dictionary("", data) is None


def test_keyword_inference():
    data = merge_test_data()
    assert infer_value("your postcode / postal area", "text", data) == data["zip"]
    assert infer_value("q7", "email", data) == data["email"]
    assert infer_value("favourite colour", "text", data) is None


def test_merge_puts_overrides_first():
    merged = merge_test_data({"email": "x@y.test", "referral": "friend"})
    assert list(merged)[:2] == ["email", "referral"]
    assert merged["email"] == "x@y.test"
    assert merged["zip"] == DEFAULT_TEST_DATA["zip"]
