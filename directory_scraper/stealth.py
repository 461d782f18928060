"""
Stealth settings for headless browser sessions.

Applied per session when ``BrowserOptions.stealth`` is set; nothing here
registers global state.
"""

# Init script masking the most common headless fingerprints
STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {get: () => undefined});

window.chrome = {runtime: {}, loadTimes: function() {}, csi: function() {}, app: {}};

Object.defineProperty(navigator, 'plugins', {
    get: () => [
        {name: 'Chrome PDF Plugin', filename: 'internal-pdf-viewer', description: 'Portable Document Format', length: 1},
        {name: 'Chrome PDF Viewer', filename: 'mhjfbmdgcfjbbpaeojofohoefgiehjai', description: '', length: 1},
    ]
});

Object.defineProperty(navigator, 'languages', {get: () => ['en-US', 'en']});
Object.defineProperty(navigator, 'platform', {get: () => 'Win32'});
Object.defineProperty(navigator, 'vendor', {get: () => 'Google Inc.'});
Object.defineProperty(navigator, 'hardwareConcurrency', {get: () => 8});

const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) => (
    parameters.name === 'notifications' ?
        Promise.resolve({state: Notification.permission}) :
        originalQuery(parameters)
);

const getParameter = WebGLRenderingContext.prototype.getParameter;
WebGLRenderingContext.prototype.getParameter = function(parameter) {
    if (parameter === 37445) return 'Intel Inc.';
    if (parameter === 37446) return 'Intel Iris OpenGL Engine';
    return getParameter.apply(this, [parameter]);
};
"""

# Chromium flags for containerised headless runs
BASE_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
]

STEALTH_ARGS = BASE_ARGS + [
    '--disable-blink-features=AutomationControlled',
    '--disable-infobars',
    '--disable-background-timer-throttling',
    '--disable-renderer-backgrounding',
    '--lang=en-US,en',
]

STEALTH_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9',
    'Sec-Fetch-Dest': 'document',
    'Sec-Fetch-Mode': 'navigate',
    'Sec-Fetch-Site': 'none',
    'Sec-Fetch-User': '?1',
    'Upgrade-Insecure-Requests': '1',
}

STEALTH_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36'
)


def get_launch_args(stealth: bool, extra_args=None):
    """
    Build Chromium launch arguments.

    Args:
        stealth: Whether to include anti-detection flags
        extra_args: Additional flags from configuration

    Returns:
        List of command line flags
    """
    args = list(STEALTH_ARGS if stealth else BASE_ARGS)
    for arg in extra_args or []:
        if arg not in args:
            args.append(arg)
    return args


def get_context_options(stealth: bool):
    """Browser context options; desktop viewport either way."""
    options = {
        'viewport': {'width': 1366, 'height': 900},
        'java_script_enabled': True,
    }
    if stealth:
        options.update({
            'user_agent': STEALTH_USER_AGENT,
            'locale': 'en-US',
            'timezone_id': 'America/New_York',
            'extra_http_headers': STEALTH_HEADERS,
        })
    return options


async def apply_stealth(page):
    """
    Install the stealth init script on a page.

    Args:
        page: Playwright page object
    """
    await page.add_init_script(STEALTH_SCRIPT)
