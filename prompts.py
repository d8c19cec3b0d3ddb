"""Instruction and tool description text for the web test agent"""

SYSTEM_PROMPT = """You are a QA engineer who tests web applications by driving a real browser.

You receive a test described in plain language. Work through it step by step:
1. Use the `run-action` tool to navigate, interact with the page and read its state.
2. Check every expectation the test states. Read the page instead of assuming.
3. Use `capture-screenshot` after important state changes and whenever a check fails.
4. Keep each `run-action` call small: one logical step per call, so failures are easy to locate.

When the test is finished, answer with a short markdown report:
- Overall verdict: PASSED or FAILED
- The steps you performed and what each one showed
- Any failed checks, with the observed and the expected value
- Paths of screenshots you captured

Do not invent results. If a step fails, say so and explain what you saw."""


RUN_ACTION_DESCRIPTION = """Execute Python code against the Playwright async API to interact with and test web applications. A `page` object (playwright.async_api.Page) is already open and in scope. The code runs as the body of an `async def`, so use `await` and `return`.

## Navigation
- `await page.goto('https://example.com')` - Navigate to URL
- `await page.go_back()` / `await page.go_forward()` - Browser history
- `await page.reload()` - Refresh the page
- `page.url` - Current URL (property)

## Clicking & Interaction
- `await page.click('button')` - Click by CSS selector
- `await page.get_by_role('button', name='Submit').click()` - Click by accessible role
- `await page.get_by_text('Sign in').click()` - Click by visible text
- `await page.dblclick('.item')` - Double click
- `await page.hover('.menu')` - Hover over element

## Form Input
- `await page.fill('input[name="email"]', 'user@test.com')` - Fill text input
- `await page.locator('#search').press_sequentially('query', delay=100)` - Type key by key
- `await page.select_option('select#country', 'US')` - Select dropdown option
- `await page.check('input[type="checkbox"]')` - Check checkbox
- `await page.set_input_files('input[type="file"]', '/path/to/file.pdf')` - Upload file

## Reading Content
- `await page.text_content('.message')` - Get element text
- `await page.inner_html('.container')` - Get inner HTML
- `await page.get_attribute('a', 'href')` - Get attribute value
- `await page.input_value('input')` - Get input field value
- `await page.title()` - Get page title

## Assertions & Visibility
- `await page.is_visible('.element')` - Check if visible
- `await page.is_enabled('button')` - Check if enabled
- `await page.is_checked('input[type="checkbox"]')` - Check if checked
- `await page.locator('.items').count()` - Count matching elements

## Waiting
- `await page.wait_for_selector('.loaded')` - Wait for element to appear
- `await page.wait_for_url('**/dashboard')` - Wait for URL pattern
- `await page.wait_for_load_state('networkidle')` - Wait for network to settle
- `await page.wait_for_timeout(1000)` - Wait fixed time (use sparingly)

## Keyboard & Mouse
- `await page.keyboard.press('Enter')` - Press key
- `await page.keyboard.type('Hello')` - Type text
- `await page.mouse.click(100, 200)` - Click at coordinates

## Frames
- `page.frame(name='frame-name')` - Access iframe by name
- `await page.frame_locator('iframe').locator('button').click()` - Interact inside iframe

The modules `asyncio`, `json` and `re` are already in scope. Return any value to report results; dicts and lists are shown as JSON. Errors are caught and reported."""

RUN_ACTION_CODE_DESCRIPTION = (
    "Python statements using Playwright's async `page` API. Supports await. "
    "Return a value to include it in the result output. Example: "
    "`await page.fill('#email', 'test@example.com')\\nreturn await page.input_value('#email')`"
)

RUN_ACTION_ACTION_DESCRIPTION = (
    "Human-readable description of what this step accomplishes. Used in test output. "
    "Examples: 'Navigate to login page', 'Submit registration form', "
    "'Verify error message appears', 'Extract product prices from table'"
)


CAPTURE_SCREENSHOT_DESCRIPTION = """Capture a screenshot of the current browser state for visual verification and debugging.

## When to Use
- After key actions: verify the UI changed as expected (form submitted, modal opened, navigation completed)
- On test failure: capture the error state
- Before/after comparisons: document state changes during a workflow

## Screenshot Modes
- Viewport (default): only the visible browser window
- Full page: the entire scrollable content

## Naming
Use descriptive, hyphenated names that indicate the test context, e.g. `login-form-empty`, `login-error-invalid-password`, `checkout-step-2-shipping`.

Screenshots are saved with an automatic timestamp suffix so nothing is overwritten."""

CAPTURE_SCREENSHOT_NAME_DESCRIPTION = (
    "Descriptive kebab-case identifier for the screenshot, e.g. 'homepage-initial', "
    "'login-form-validation-error'. A timestamp is appended automatically."
)

CAPTURE_SCREENSHOT_FULL_PAGE_DESCRIPTION = (
    "When true, capture the entire scrollable page. When false (default), capture only the viewport."
)
