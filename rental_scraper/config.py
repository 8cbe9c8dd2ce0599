"""
Configuration file for the Yango Drive rental scraper
"""

from types import MappingProxyType

# Yango Drive URLs
SEARCH_BASE_URL = "https://drive.yango.com/search/all"

# Selectors for the search results list (card view)
SELECTORS = MappingProxyType({
    'title': 'span[class*="Card_CardTitleMedium__korrS"]',
    'features': 'div[class*="HStack_HStack__bHoaj Card_CardBubbles__zuOuw"]',
    'price': 'div[class*="Heading_Heading__PjLg8 Card_CardPrice__spWUR"]',
    'model': 'span[class*="ButtonSimilarInfo_ButtonSimilarInfoPrefix___Qou3"]',
    'feature_spans': 'span[class*="Text_Text__F4Wpv Card_CardBubble__zukT3"]',
    'detail_button': 'button[data-testid="Card.Book"]',
    'cross_out': '.Price_crossOut__QufS3',
})

# Selectors for the "view deal" detail page
DETAIL_SELECTORS = MappingProxyType({
    'island': 'div[class*="Island_IslandWrap__QuZPl"]',
    'slot_title': 'div[class*="SlotText_Title__gHEmU"]',
    'slot_subtitle': 'div[class*="SlotText_Subtitle__yHTPE"]',
    'insurance': 'div[class*="BookFormInsuranceOptions_island__"]',
})

CURRENCY = "AED"
NOT_AVAILABLE = "N/A"

# Scrape limits
MAX_CARDS = 5
EXTRACT_ATTEMPTS = 2
EXTRACT_RETRY_DELAY = 2.0  # seconds

# Base time is "now" shifted forward so generated URLs never point at the past
BASE_TIME_OFFSET_HOURS = 7
MONTHLY_THRESHOLD_HOURS = 720

# Browser settings
HEADLESS_MODE = True
SLOW_MO = 0
TIMEOUT = 30000  # default page timeout, ms
NAVIGATION_TIMEOUT = 5000
CARD_WAIT_TIMEOUT = 5000
BUTTON_VISIBLE_TIMEOUT = 2000
BUTTON_CLICK_TIMEOUT = 3000
DETAIL_SECTION_TIMEOUT = 3000
DETAIL_SETTLE_DELAY = 2.0  # seconds
LAUNCH_RETRIES = 1

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
LOCALE = "en-US"
VIEWPORT = {"width": 1920, "height": 1080}
EXTRA_HTTP_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
}

# Output settings
OUTPUT_FOLDER = 'output'
JSON_FILENAME = 'rental_runs.json'
EXCEL_SHEET_NAME = 'Car Data'
LOG_FILENAME = 'scraper_log.txt'
SCREENSHOT_ON_ERROR = False
