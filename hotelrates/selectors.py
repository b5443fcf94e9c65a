"""Centralised selectors for the Traveloka hotel search flow."""

SEARCH_URL = "https://www.traveloka.com/id-id/hotel"

# ==== SEARCH FORM ====
SEARCH_INPUT = (
    "input[placeholder*='hotel' i], input[placeholder*='kota' i], "
    "[data-testid*='search'] input, input[type='search']"
)
AUTOCOMPLETE_ITEM = (
    "[data-testid='autocomplete-item-name'], [data-testid*='autocomplete-item'], "
    "[role='listbox'] [role='option']"
)
SEARCH_SUBMIT = (
    "[data-testid='search-submit-button'], button[type='submit'], "
    "button:has-text('Cari')"
)

# ==== RESULT LIST ====
HOTEL_NAME = "[data-testid='tvat-hotelName']"
HOTEL_PRICE = "[data-testid='tvat-hotelPrice']"
HOTEL_LOCATION = "[data-testid*='location'], [data-testid*='address'], [data-testid*='city']"

# ==== OVERLAYS ====
DIALOG_CLOSE = (
    "[role='dialog'] [aria-label*='close' i], [aria-modal='true'] [aria-label*='close' i], "
    "[role='dialog'] button:has-text('Nanti'), [role='dialog'] button:has-text('Tutup')"
)
