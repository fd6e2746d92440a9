# Importing every model registers it on Base.metadata
from .admin import Admin, BranchManager
from .branch import Branch
from .bike import Bike, BikeImage
from .stock import StockItem, StockExtraField
from .customer import Customer, CustomerProfile
from .customer_vehicle import CustomerVehicle, VehicleServiceEnrollment
from .value_added_service import ValueAddedService
from .service_booking import ServiceBooking
from .finance_application import FinanceApplication
from .enquiry import Enquiry
from .service_package import ServicePackage
