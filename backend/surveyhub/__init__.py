"""SurveyHub: survey authoring, invitation and answer collection API."""
