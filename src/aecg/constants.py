"""Constants for HL7 annotated ECG documents."""

# XML namespaces
HL7_NAMESPACE = "urn:hl7-org:v3"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
VOC_NAMESPACE = "urn:hl7-org:v3/voc"
NSMAP = {None: HL7_NAMESPACE, "xsi": XSI_NAMESPACE, "voc": VOC_NAMESPACE}
XSI_TYPE = f"{{{XSI_NAMESPACE}}}type"

ROOT_TAG = "AnnotatedECG"

# Value discriminators (xsi:type)
GLIST_TS = "GLIST_TS"
GLIST_PQ = "GLIST_PQ"
SLIST_PQ = "SLIST_PQ"
SLIST_INT = "SLIST_INT"
PQ = "PQ"
ST = "ST"

# Code system OIDs
CPT_OID = "2.16.840.1.113883.6.12"
MDC_OID = "2.16.840.1.113883.6.24"
ACT_CODE_OID = "2.16.840.1.113883.5.4"
ADMINISTRATIVE_GENDER_OID = "2.16.840.1.113883.5.1"
RACE_OID = "2.16.840.1.113883.5.104"
RESEARCH_SUBJECT_ROLE_OID = "2.16.840.1.113883.5.111"
LOINC_OID = "2.16.840.1.113883.6.1"
SNOMED_CT_OID = "2.16.840.1.113883.6.96"
UCUM_OID = "2.16.840.1.113883.6.8"

CODE_SYSTEM_NAMES = {
    CPT_OID: "CPT-4",
    MDC_OID: "MDC",
    ACT_CODE_OID: "ActCode",
    ADMINISTRATIVE_GENDER_OID: "AdministrativeGender",
    RACE_OID: "Race",
    RESEARCH_SUBJECT_ROLE_OID: "ResearchSubjectRoleBasis",
    LOINC_OID: "LOINC",
    SNOMED_CT_OID: "SNOMED CT",
    UCUM_OID: "UCUM",
}

# Document codes (CPT)
CPT_ECG_ROUTINE = "93000"
CPT_ECG_TRACING = "93005"
CPT_ECG_INTERPRETATION = "93010"

# Series types
RHYTHM = "RHYTHM"
REPRESENTATIVE_BEAT = "REPRESENTATIVE_BEAT"
MEDIAN_BEAT = "MEDIAN_BEAT"
SERIES_TYPE_CODES = frozenset({RHYTHM, REPRESENTATIVE_BEAT, MEDIAN_BEAT})

# Time sequence codes
TIME_ABSOLUTE = "TIME_ABSOLUTE"
TIME_RELATIVE = "TIME_RELATIVE"
TIME_SEQUENCE_CODES = frozenset({TIME_ABSOLUTE, TIME_RELATIVE})

# Standard 12-lead ECG lead codes in the default order
STANDARD_LEAD_CODES = [
    "MDC_ECG_LEAD_I",
    "MDC_ECG_LEAD_II",
    "MDC_ECG_LEAD_III",
    "MDC_ECG_LEAD_AVR",
    "MDC_ECG_LEAD_AVL",
    "MDC_ECG_LEAD_AVF",
    "MDC_ECG_LEAD_V1",
    "MDC_ECG_LEAD_V2",
    "MDC_ECG_LEAD_V3",
    "MDC_ECG_LEAD_V4",
    "MDC_ECG_LEAD_V5",
    "MDC_ECG_LEAD_V6",
]
ALLOWED_LEAD_CODES = frozenset(STANDARD_LEAD_CODES)

# Closed enumerations checked by the validator
CONFIDENTIALITY_CODES = frozenset({"S", "I", "B", "C"})
REASON_CODES = frozenset({"PER_PROTOCOL", "NOT_IN_PROTOCOL", "IN_PROTOCOL_WRONG_EVENT"})
SUBJECT_ROLE_CODES = frozenset({"SCREENING", "ENROLLED"})
GENDER_CODES = frozenset({"M", "F", "UN"})
RACE_CODES = frozenset({"1002-5", "2028-9", "2054-5", "2076-8", "2106-3", "2131-1"})

# Regions of interest
ROI_CLASS_CODE = "ROIBND"
ROI_PARTIALLY_SPECIFIED = "ROIPS"
ROI_FULLY_SPECIFIED = "ROIFS"
ROI_CODES = frozenset({ROI_PARTIALLY_SPECIFIED, ROI_FULLY_SPECIFIED})

# Units
UNIT_SECOND = "s"
UNIT_MILLISECOND = "ms"
UNIT_MICROVOLT = "uV"
UNIT_BPM = "bpm"

# Nanoseconds per time unit, for generated timestamp lists
TIME_UNIT_NANOSECONDS = {
    "h": 3_600_000_000_000,
    "min": 60_000_000_000,
    "s": 1_000_000_000,
    "ms": 1_000_000,
    "us": 1_000,
    "ns": 1,
}

# Common global measurement codes (MDC)
HEART_RATE_CODE = "MDC_ECG_HEART_RATE"
PR_INTERVAL_CODE = "MDC_ECG_TIME_PD_PR"
QRS_DURATION_CODE = "MDC_ECG_TIME_PD_QRS"
QT_INTERVAL_CODE = "MDC_ECG_TIME_PD_QT"
QTC_INTERVAL_CODE = "MDC_ECG_TIME_PD_QTc"
