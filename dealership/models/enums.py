from enum import Enum


class AdminRole(str, Enum):
    SUPER_ADMIN = "Super-Admin"
    BRANCH_ADMIN = "Branch-Admin"


class StockStatus(str, Enum):
    AVAILABLE = "Available"
    SOLD = "Sold"
    RESERVED = "Reserved"
    SERVICE = "Service"
    DAMAGED = "Damaged"
    TRANSIT = "Transit"


class StockLocation(str, Enum):
    SHOWROOM = "Showroom"
    WAREHOUSE = "Warehouse"
    SERVICE_CENTER = "Service Center"
    CUSTOMER = "Customer"


# CSV stock keeps free-text, upper-cased locations
DEFAULT_CSV_LOCATION = "WAREHOUSE"


class StockSource(str, Enum):
    MANUAL = "manual"
    CSV = "csv"


class FuelType(str, Enum):
    PETROL = "Petrol"
    ELECTRIC = "Electric"
    HYBRID = "Hybrid"


class PaymentStatus(str, Enum):
    PAID = "Paid"
    PARTIAL = "Partial"
    PENDING = "Pending"


class TransferType(str, Enum):
    OWNERSHIP_TRANSFER = "Ownership Transfer"
    RETURNED = "Returned"


class BikeCategory(str, Enum):
    SPORT = "sport"
    ADVENTURE = "adventure"
    CRUISER = "cruiser"
    TOURING = "touring"
    NAKED = "naked"
    ELECTRIC = "electric"
    COMMUTER = "commuter"
    AUTOMATIC = "automatic"
    GEARLESS = "gearless"


class MainCategory(str, Enum):
    BIKE = "bike"
    SCOOTER = "scooter"


class FuelNorms(str, Enum):
    BS4 = "BS4"
    BS6 = "BS6"
    BS6_PHASE_2 = "BS6 Phase 2"
    ELECTRIC = "Electric"


class VehicleServiceType(str, Enum):
    REGULAR = "Regular"
    DUE = "Due"
    OVERDUE = "Overdue"


class VasServiceType(str, Enum):
    EXTENDED_WARRANTY = "Extended Warranty"
    EXTENDED_WARRANTY_PLUS = "Extended Warranty Plus"
    ANNUAL_MAINTENANCE_CONTRACT = "Annual Maintenance Contract"
    ENGINE_HEALTH_ASSURANCE = "Engine Health Assurance"
    ROADSIDE_ASSISTANCE = "Roadside Assistance"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EmploymentType(str, Enum):
    SALARIED = "salaried"
    SELF_EMPLOYED = "self-employed"
    BUSINESS_OWNER = "business-owner"
    RETIRED = "retired"
    STUDENT = "student"


class CreditScoreRange(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under-review"
    PRE_APPROVED = "pre-approved"
    APPROVED = "approved"
    REJECTED = "rejected"


class EnquiryStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    RESOLVED = "resolved"


class BloodGroup(str, Enum):
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"
