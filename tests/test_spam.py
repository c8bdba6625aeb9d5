from spam import detect_spam, spam_score

CLEAN_MESSAGE = "We would like a quote for redesigning our living room and kitchen."


def test_clean_submission_scores_zero():
    assert spam_score("asha@studio.com", CLEAN_MESSAGE) == 0
    assert detect_spam("asha@studio.com", CLEAN_MESSAGE).is_spam is False


def test_each_denylisted_word_adds_two():
    message = "Need a loan and better credit for the renovation budget please."
    assert spam_score("asha@studio.com", message) == 4


def test_score_of_four_is_not_spam():
    check = detect_spam("asha@studio.com", "Need a loan and better credit for the renovation budget please.")
    assert check.spam_score == 4
    assert check.is_spam is False


def test_score_of_five_is_spam():
    check = detect_spam("asha@tempmail.com", CLEAN_MESSAGE)
    assert check.spam_score == 5
    assert check.is_spam is True


def test_shouting_adds_three():
    assert spam_score("asha@studio.com", "PLEASE CALL ME BACK ABOUT THE KITCHEN") == 3


def test_caps_ratio_must_exceed_limit():
    # 7 capitals out of 10 characters is exactly 0.7, which does not count
    assert spam_score("asha@studio.com", "ABCDEFGhij") == 0


def test_short_message_adds_two():
    assert spam_score("asha@studio.com", "hi there") == 2


def test_combined_signals():
    check = detect_spam("bot@test-domain.com", "CLICK HERE")
    # click here (+2), caps (+3), suspicious host (+5)
    assert check.spam_score == 10
    assert check.is_spam is True
