import enum


class EmailRecipientType(str, enum.Enum):
    CUSTOMER = "customer"
    CUSTOM = "custom"
