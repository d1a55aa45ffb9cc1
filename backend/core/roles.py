"""Role constants, role groups and profile code generation"""

ADMINISTRATOR = 'ADMINISTRATOR'
HUMAN_RESOURCES = 'HUMAN_RESOURCES'
EMPLOYEE = 'EMPLOYEE'
CUSTOMER = 'CUSTOMER'
CUSTOMER_VIP1 = 'CUSTOMER_VIP1'
CUSTOMER_VIP2 = 'CUSTOMER_VIP2'
CUSTOMER_VIP3 = 'CUSTOMER_VIP3'

ROLE_CHOICES = [
    (ADMINISTRATOR, 'Administrator'),
    (HUMAN_RESOURCES, 'Human Resources'),
    (EMPLOYEE, 'Employee'),
    (CUSTOMER, 'Customer'),
    (CUSTOMER_VIP1, 'Customer VIP 1'),
    (CUSTOMER_VIP2, 'Customer VIP 2'),
    (CUSTOMER_VIP3, 'Customer VIP 3'),
]

ALL_ROLES = [value for value, _ in ROLE_CHOICES]

MANAGEMENT = [ADMINISTRATOR, HUMAN_RESOURCES]
CUSTOMERS = [CUSTOMER, CUSTOMER_VIP1, CUSTOMER_VIP2, CUSTOMER_VIP3]
EMPLOYEES = [EMPLOYEE]
VIP = [CUSTOMER_VIP1, CUSTOMER_VIP2, CUSTOMER_VIP3]

ROLE_GROUPS = {
    'MANAGEMENT': MANAGEMENT,
    'CUSTOMERS': CUSTOMERS,
    'EMPLOYEES': EMPLOYEES,
    'VIP': VIP,
    'ALL': ALL_ROLES,
}

ROLE_PREFIXES = {
    ADMINISTRATOR: 'ADMIN',
    HUMAN_RESOURCES: 'HR',
    EMPLOYEE: 'NV',
    CUSTOMER: 'KH',
    CUSTOMER_VIP1: 'VIP1',
    CUSTOMER_VIP2: 'VIP2',
    CUSTOMER_VIP3: 'VIP3',
}


def generate_code(role, user_id):
    """Build a profile code such as KH-0007 from a role and a user id"""
    prefix = ROLE_PREFIXES.get(role, ROLE_PREFIXES[CUSTOMER])
    return f"{prefix}-{int(user_id):04d}"


def user_role(user):
    """Effective role of a user; superusers always act as administrators"""
    if not user or not user.is_authenticated:
        return None
    if user.is_superuser:
        return ADMINISTRATOR
    return getattr(user, 'role', None)


def has_role(user, roles):
    return user_role(user) in roles


def is_management(user):
    return has_role(user, MANAGEMENT)
