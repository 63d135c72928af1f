import enum


class OrderStatusColor(str, enum.Enum):
    GREEN = "green"
    ORANGE = "orange"
    RED = "red"
    BLUE = "blue"
    YELLOW = "yellow"
    PINK = "pink"
    PURPLE = "purple"
    TURQUOISE = "turquoise"
    LIGHT = "light"
    GREY = "grey"
    BLACK = "black"
