STANDARD_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".tif", ".tiff"}
HEIF_EXTENSIONS = {".heic", ".heif", ".hif"}
SUPPORTED_EXTENSIONS = STANDARD_EXTENSIONS | HEIF_EXTENSIONS

LAYOUT_SINGLE = "single"
LAYOUT_GRID = "grid"
LAYOUT_SCRAPBOOK = "scrapbook"
VALID_LAYOUTS = {LAYOUT_SINGLE, LAYOUT_GRID, LAYOUT_SCRAPBOOK}
COLLAGE_STYLES = {LAYOUT_GRID, LAYOUT_SCRAPBOOK}

CROPPER_CENTER = "center"
CROPPER_SMARTCROP = "smartcrop"

BLEND_NORMAL = "normal"
BLEND_SCREEN = "screen"
BLEND_MULTIPLY = "multiply"
BLEND_OVERLAY = "overlay"
VALID_BLEND_MODES = {BLEND_NORMAL, BLEND_SCREEN, BLEND_MULTIPLY, BLEND_OVERLAY}

# collage templates saturate at four slots
MAX_COLLAGE_SLOTS = 4

DEFAULT_LOOK = "default"
JPEG_MIME = "image/jpeg"
