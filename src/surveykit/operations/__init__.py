"""Store-level operations composed by :class:`surveykit.service.SurveyService`.

Every function takes the UnitOfWork of an open transaction.  Mutations
also take a PendingInvalidation to record the cache tags they make stale.
"""
