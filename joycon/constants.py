"""USB identifiers of Joy-Con controllers."""

JOYCON_VENDOR_ID = 0x057E
JOYCON_L_PRODUCT_ID = 0x2006
JOYCON_R_PRODUCT_ID = 0x2007

JOYCON_PRODUCT_IDS = frozenset({JOYCON_L_PRODUCT_ID, JOYCON_R_PRODUCT_ID})