"""Fixed geometry and thresholds shared by the OCR pipeline."""

APP_NAME = "cardscan"
VERSION = "1.0.0"

# Nominal card used by both classifiers
CARD_WIDTH = 480
CARD_HEIGHT = 302

# FindFour grid
GRID_ROWS = 34
GRID_COLS = 51
GRID_CLASSES = 3  # background, digit, expiry
GRID_DIGIT_CLASS = 1
GRID_EXPIRY_CLASS = 2
GRID_MIN_CONFIDENCE = 0.5
BOX_WIDTH = 80
BOX_HEIGHT = 36

# Digit recognizer
DIGIT_IMAGE_WIDTH = 80
DIGIT_IMAGE_HEIGHT = 36
NUM_PREDICTIONS = 17
DIGIT_CLASSES = 11
BACKGROUND_CLASS = 10
DIGIT_MIN_CONFIDENCE = 0.5

# Post detection
MAX_BOXES_TO_DETECT = 20
DELTA_ROW_FOR_COMBINE = 2
DELTA_COL_FOR_COMBINE = 2
DELTA_ROW_FOR_HORIZONTAL = 1
DELTA_COL_FOR_VERTICAL = 1
NUMBER_WORD_COUNT = 4
MAX_SPACING_SPREAD = 2

# Number / expiry
CARD_NUMBER_LENGTH = 16
EXPIRY_DIGIT_COUNT = 6
EXPIRY_CENTURY_THRESHOLD = 90
EXPIRY_CENTURY_ABOVE = 1300
EXPIRY_CENTURY_BELOW = 1400

SUPPORTED_ORIENTATIONS = (0, 90, 180, 270)
