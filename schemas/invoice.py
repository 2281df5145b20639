# schemas/invoice.py
"""
Pydantic schemas for the invoice proxy API.

Field presence and amount rules are checked by InvoiceService so that each
failure maps to its own error code; the models here only shape the body.
"""
from typing import Any, Optional
from pydantic import AliasChoices, BaseModel, Field, ConfigDict


class CustomerDetails(BaseModel):
     """Customer contact block forwarded to Xendit as-is."""
     given_names: Optional[str] = None
     surname: Optional[str] = None
     email: Optional[str] = None
     mobile_number: Optional[str] = None

     model_config = ConfigDict(extra="allow")


class InvoiceCreateRequest(BaseModel):
     """Body of POST /v1/create/invoice."""
     performed_by: Optional[str] = Field(None, description="ID of the user creating the invoice")
     external_id: Optional[str] = Field(None, description="Booking ID, used as the Xendit external_id")
     amount: Optional[Any] = Field(None, description="Invoice amount (positive number)")
     description: Optional[str] = None
     customer: Optional[CustomerDetails] = None
     currency: Optional[str] = Field(None, description="Defaults to IDR")
     invoice_duration: Optional[int] = Field(None, description="Validity in seconds, defaults to 86400")

     # Other Xendit invoice options (redirect URLs, payer_email, ...) pass through
     model_config = ConfigDict(
          extra="allow",
          json_schema_extra={
               "example": {
                    "performed_by": "7f1c1d3e-0d6b-4a53-9a55-2b1d3c4e5f60",
                    "external_id": "0b6f7a8e-3b2c-4c1d-9e8f-7a6b5c4d3e2f",
                    "amount": 150000,
                    "description": "Self photo session - 2 persons",
                    "customer": {
                         "given_names": "Sinta",
                         "surname": "Wijaya",
                         "email": "sinta@example.com",
                         "mobile_number": "+6281234567890"
                    }
               }
          }
     )

     def invoice_fields(self) -> dict:
          """Fields sent to Xendit: everything except performed_by, unset values dropped."""
          return self.model_dump(exclude={"performed_by"}, exclude_none=True)


class GetInvoiceRequest(BaseModel):
     """Body of POST /v1/get/invoice."""
     performed_by: Optional[str] = None
     invoice_id: Optional[str] = None
     external_id: Optional[str] = None

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "performed_by": "7f1c1d3e-0d6b-4a53-9a55-2b1d3c4e5f60",
                    "external_id": "0b6f7a8e-3b2c-4c1d-9e8f-7a6b5c4d3e2f"
               }
          }
     )


class ProviderTestRequest(BaseModel):
     """Body of POST /v1/test/provider."""
     provider_id: Optional[str] = Field(
          None,
          validation_alias=AliasChoices("provider_id", "providerId"),
     )
