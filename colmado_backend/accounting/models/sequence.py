# accounting/models/sequence.py

from django.db import models


class EntrySequence(models.Model):
    """
    Counter row per numbering key (e.g. "JE-2024").

    Incremented only with an UPDATE ... SET last_number = last_number + 1
    inside the posting transaction (see journal_entry_service), so the row
    lock serializes concurrent writers.
    """

    key = models.CharField(max_length=32, unique=True)
    last_number = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Entry Sequence"

    def __str__(self):
        return f"{self.key}: {self.last_number}"
