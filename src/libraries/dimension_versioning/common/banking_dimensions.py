"""
Dimension configurations for the banking warehouse (schema ``banking_dw``).

Column lists follow the warehouse DDL. Attributes whose history matters for
regulatory or analytical reporting are TYPE-2; identity and descriptive
corrections (names, numbers, coordinates) are TYPE-1.
"""

from typing import List

from .config import DimensionConfig, DimensionRegistry

BANKING_SCHEMA = "banking_dw"


def customer_dimension(schema: str = BANKING_SCHEMA) -> DimensionConfig:
    return DimensionConfig(
        dimension_id="customer",
        table_name="dim_customer",
        schema=schema,
        natural_key_column="customer_nk",
        surrogate_key_column="customer_sk",
        type2_columns=[
            "customer_type", "customer_segment", "customer_sub_segment",
            "kyc_status", "risk_rating", "pep_flag", "sanctions_flag",
            "fatca_flag", "crs_flag", "residency_country_sk", "branch_sk",
            "relationship_mgr_sk", "annual_income_band", "employment_status",
        ],
        type1_columns=[
            "customer_number", "full_name", "first_name", "last_name",
            "date_of_birth", "age_band", "gender", "nationality_country_sk",
            "kyc_expiry_date", "acquisition_channel", "acquisition_date",
            "relationship_tenure_yrs",
        ],
        column_types={
            "date_of_birth": "date", "kyc_expiry_date": "date", "acquisition_date": "date",
            "pep_flag": "boolean", "sanctions_flag": "boolean",
            "fatca_flag": "boolean", "crs_flag": "boolean",
            "nationality_country_sk": "integer", "residency_country_sk": "integer",
            "branch_sk": "integer", "relationship_mgr_sk": "integer",
            "relationship_tenure_yrs": "numeric",
        },
        case_insensitive_columns=["customer_type", "kyc_status", "risk_rating"],
    )


def account_dimension(schema: str = BANKING_SCHEMA) -> DimensionConfig:
    return DimensionConfig(
        dimension_id="account",
        table_name="dim_account",
        schema=schema,
        natural_key_column="account_nk",
        surrogate_key_column="account_sk",
        type2_columns=[
            "account_type", "account_status", "product_sk", "customer_sk",
            "branch_sk", "interest_rate", "interest_rate_type",
            "overdraft_limit", "customer_segment", "is_dormant",
        ],
        type1_columns=[
            "account_number", "currency_sk", "open_date", "close_date",
            "is_salary_account", "dormancy_date",
        ],
        column_types={
            "product_sk": "integer", "customer_sk": "integer", "branch_sk": "integer",
            "currency_sk": "integer", "open_date": "date", "close_date": "date",
            "dormancy_date": "date", "interest_rate": "numeric",
            "overdraft_limit": "numeric", "is_salary_account": "boolean",
            "is_dormant": "boolean",
        },
        case_insensitive_columns=["account_status"],
    )


def branch_dimension(schema: str = BANKING_SCHEMA) -> DimensionConfig:
    return DimensionConfig(
        dimension_id="branch",
        table_name="dim_branch",
        schema=schema,
        natural_key_column="branch_nk",
        surrogate_key_column="branch_sk",
        type2_columns=[
            "branch_type", "channel_category", "region_name", "city",
            "country_sk", "branch_status", "manager_employee_sk",
        ],
        type1_columns=[
            "branch_code", "branch_name", "swift_bic_code", "latitude", "longitude",
        ],
        column_types={
            "country_sk": "integer", "manager_employee_sk": "integer",
            "latitude": "numeric", "longitude": "numeric",
        },
        case_insensitive_columns=["channel_category", "branch_status"],
    )


def employee_dimension(schema: str = BANKING_SCHEMA) -> DimensionConfig:
    return DimensionConfig(
        dimension_id="employee",
        table_name="dim_employee",
        schema=schema,
        natural_key_column="employee_nk",
        surrogate_key_column="employee_sk",
        type2_columns=[
            "job_title", "job_function", "department_name", "branch_sk",
            "manager_employee_sk", "employment_status",
        ],
        type1_columns=["employee_number", "full_name", "hire_date"],
        column_types={
            "branch_sk": "integer", "manager_employee_sk": "integer", "hire_date": "date",
        },
        case_insensitive_columns=["employment_status"],
    )


def geography_dimension(schema: str = BANKING_SCHEMA) -> DimensionConfig:
    # dim_geography has no *_nk column; the ISO alpha-3 code identifies a country.
    return DimensionConfig(
        dimension_id="geography",
        table_name="dim_geography",
        schema=schema,
        natural_key_column="country_code",
        surrogate_key_column="geography_sk",
        type2_columns=[
            "aml_risk_rating", "fatf_member", "fatf_grey_list", "fatf_black_list",
            "eu_member", "gdpr_adequate", "sanctions_risk_flag", "fatca_iga_type",
        ],
        type1_columns=["country_code_2", "country_name", "region", "sub_region"],
        column_types={
            "fatf_member": "boolean", "fatf_grey_list": "boolean",
            "fatf_black_list": "boolean", "eu_member": "boolean",
            "gdpr_adequate": "boolean", "sanctions_risk_flag": "boolean",
        },
        case_insensitive_columns=["aml_risk_rating", "country_code_2"],
    )


def collateral_dimension(schema: str = BANKING_SCHEMA) -> DimensionConfig:
    return DimensionConfig(
        dimension_id="collateral",
        table_name="dim_collateral",
        schema=schema,
        natural_key_column="collateral_nk",
        surrogate_key_column="collateral_sk",
        type2_columns=[
            "market_value", "eligible_value", "haircut_percentage",
            "legal_perfection_status", "status", "owner_customer_sk",
        ],
        type1_columns=[
            "collateral_type", "collateral_description", "location_country_sk",
            "nominal_value", "valuation_date",
        ],
        column_types={
            "owner_customer_sk": "integer", "location_country_sk": "integer",
            "nominal_value": "numeric", "market_value": "numeric",
            "eligible_value": "numeric", "haircut_percentage": "numeric",
            "valuation_date": "date",
        },
        case_insensitive_columns=["status"],
    )


def banking_dimensions(schema: str = BANKING_SCHEMA) -> List[DimensionConfig]:
    """All versioned dimensions of the banking warehouse."""
    return [
        customer_dimension(schema),
        account_dimension(schema),
        branch_dimension(schema),
        employee_dimension(schema),
        geography_dimension(schema),
        collateral_dimension(schema),
    ]


def banking_registry(schema: str = BANKING_SCHEMA) -> DimensionRegistry:
    return DimensionRegistry(banking_dimensions(schema))
