from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict


# ============================================================
# REQUEST MODEL
# ============================================================

class ScanRequest(BaseModel):
    imageBase64: Optional[str] = None
    scanType: Optional[str] = None
    mimeType: Optional[str] = None


# ============================================================
# ANALYSIS RESULT
#
# Shape the AI is asked to return. Fields are loose: only
# findings, overallSeverity and summary are required, the
# rest default to empty so a partial report still renders.
# Models send null for fields they have nothing to say about
# and fractional or quoted numbers, so leaves accept those.
# ============================================================

Number = Union[int, float, str]


class ScanInfo(BaseModel):
    scanType: Optional[str] = ""
    bodyRegion: Optional[str] = ""
    imageQuality: Optional[str] = ""

    model_config = ConfigDict(extra="allow")


class Finding(BaseModel):
    type: Optional[str] = ""
    location: Optional[str] = ""
    description: Optional[str] = ""
    severity: Optional[str] = ""
    confidence: Optional[Number] = 0.0

    model_config = ConfigDict(extra="allow")


class SpecialistReferral(BaseModel):
    type: Optional[str] = ""
    urgency: Optional[str] = ""
    reason: Optional[str] = ""

    model_config = ConfigDict(extra="allow")


class Medication(BaseModel):
    name: Optional[str] = ""
    purpose: Optional[str] = ""
    note: Optional[str] = ""

    model_config = ConfigDict(extra="allow")


class Recommendations(BaseModel):
    immediateAction: Optional[str] = ""
    specialistReferral: Optional[SpecialistReferral] = SpecialistReferral()
    suggestedMedications: Optional[List[Medication]] = []
    additionalTests: Optional[List[str]] = []

    model_config = ConfigDict(extra="allow")


class AnalysisResult(BaseModel):
    scanAnalysis: Optional[ScanInfo] = ScanInfo()
    findings: List[Finding]
    overallSeverity: str
    severityScore: Optional[Number] = 0
    recommendations: Optional[Recommendations] = Recommendations()
    summary: str
    disclaimer: Optional[str] = ""

    model_config = ConfigDict(extra="allow")
