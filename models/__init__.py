# Competition object graph: Competition -> Stage -> Group -> GroupMatch/GroupBreak
