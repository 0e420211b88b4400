# config.py
from paths import assets_dir

from env_config import get_env, get_env_float

CLINIC_BRAND = get_env("CLINIC_BRAND", "SIA Dental")


# ----------------- PAGE GEOMETRY -----------------
# Custom page size: 11.25in x 20in at 72 points/inch (bottom-left origin)
PDF_PAGE_WIDTH = 810
PDF_PAGE_HEIGHT = 1440

# Template PDF page roles
TEMPLATE_COVER_PAGE = 0
TEMPLATE_TABLE_PAGE = 1
TEMPLATE_CONTINUATION_PAGE = 2


# ----------------- ASSETS -----------------
ASSETS_DIR = assets_dir()
FONTS_DIR = ASSETS_DIR / "fonts"
TEMPLATES_DIR = ASSETS_DIR / "templates"
DENTIST_PHOTOS_DIR = ASSETS_DIR / "dentist-photos"

FONT_REGULAR_PATH = FONTS_DIR / "Nunito-Regular.ttf"
FONT_BOLD_PATH = FONTS_DIR / "Nunito-Bold.ttf"

# Built-in fallback family when the brand fonts cannot be loaded
FALLBACK_FONT_REGULAR = "Helvetica"
FALLBACK_FONT_BOLD = "Helvetica-Bold"

DEFAULT_COVER_PDF = str(TEMPLATES_DIR / "TreatmentPlanBlank.pdf")


# ----------------- COLOURS (RGB 0..1) -----------------
COLORS = {
    "black": (0, 0, 0),
    "dark_gray": (0.12, 0.16, 0.22),      # #1F2937
    "gray": (0.4, 0.4, 0.4),
    "white": (1, 1, 1),
    "sia_teal": (0.17, 0.75, 0.70),       # #2BBFB3
    "sia_purple": (0.65, 0.20, 0.55),     # #A5338D - patient names
    "header_bg": (0.12, 0.16, 0.22),
    "border": (0.85, 0.85, 0.85),
    "total_bg": (0.9, 0.9, 0.9),
}


# ----------------- LOCATIONS / TEAMS -----------------
LOCATION_KEYS = ["essendon", "burwood", "mulgrave"]

LOCATIONS = {
    "essendon": {
        "name": "Essendon",
        "website": "siadental.com.au",
        "phone": "(03) 9289 3999",
        "address": "1138-1140 Mt Alexander Rd, Essendon, VIC 3040",
    },
    "burwood": {
        "name": "Burwood",
        "website": "siadentalburwood.com.au",
        "phone": "(03) 8538 6199",
        "address": "138-140 Burwood Hwy, Burwood, VIC 3125",
    },
    "mulgrave": {
        "name": "Mulgrave",
        "website": "",
        "phone": "",
        "address": "",
    },
}

LOCATION_TO_TEAM = {
    "essendon": "essendon",
    "burwood": "burwood",
    "mulgrave": "mulgrave",
}

DEFAULT_TEAM_PDFS = {
    team: str(TEMPLATES_DIR / f"{team}-team.pdf") for team in sorted(set(LOCATION_TO_TEAM.values()))
}


# ----------------- TEMPLATE GEOMETRY DEFAULTS -----------------
DEFAULT_TEMPLATE_SETTINGS = {
    "cover_pdf": DEFAULT_COVER_PDF,
    "team_pdfs": dict(DEFAULT_TEAM_PDFS),
    "patient_name_position": {"x": 405, "y": 470},
    "patient_name_font_size": 40,
    "doctor_name_position": {"x": 300, "y": 215},
    "doctor_name_font_size": 28,
    "doctor_photo_position": {"x": 90, "y": 160, "size": 180},
    "table_start_y": 1180,
    "table_margin_x": 40,
    "row_height": 110,
    "max_rows_per_page": 5,
}


# ----------------- TABLE STYLE -----------------
# Item | Tooth | Description | Qty | Fee
COLUMN_FRACTIONS = {
    "item": 0.10,
    "tooth": 0.10,
    "description": 0.50,
    "qty": 0.12,
    "fee": 0.18,
}

TABLE_HEADER_HEIGHT = 45
TABLE_HEADER_FONT_SIZE = 14
ROW_FONT_SIZE = 12
ROW_LINE_HEIGHT = 16
DESCRIPTION_PADDING = 8
FEE_RIGHT_PADDING = 10
TOTAL_BAND_HEIGHT = 50
TOTAL_FONT_SIZE = 16

COVER_INTRO_LINES = ["A personalised", "treatment plan for:"]
COVER_INTRO_FONT_SIZE = 32
COVER_INTRO_Y = [580, 540]

PHOTO_RING_WIDTH = 3


# ----------------- TEXT EXTRACTION -----------------
LINE_Y_TOLERANCE = get_env_float("LINE_Y_TOLERANCE", 5.0)
